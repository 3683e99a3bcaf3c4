"""Async httpx client for the UK vehicle data API.

Understands both the checkcardetails "ukvehicledata" payload
(VehicleRegistration / Dimensions / SmmtDetails blocks) and the flat
DVLA vehicle-enquiry payload, and normalizes either into VehicleAttributes.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from scrapquote.config import VehicleApiSettings, settings
from scrapquote.errors import UpstreamUnavailable, VehicleNotFound
from scrapquote.integrations.vehicle.schemas import VehicleAttributes
from scrapquote.notifications.events import emit
from scrapquote.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

# HTTP statuses that mean "this registration is not valid / not known"
_NOT_FOUND_STATUSES = {400, 404, 422}


def _to_decimal(value: Any) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        logger.debug("Ignoring non-numeric weight value: %r", value)
        return None


def _to_int(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        return int(str(value)[:4])
    except ValueError:
        return None


def _mask(reg_number: str) -> str:
    return reg_number[:4] + "***"


class VehicleDataClient:
    """Thin async wrapper around GET {base_url}/vehicledata/ukvehicledata?apikey=&vrm=."""

    def __init__(self, config: VehicleApiSettings | None = None) -> None:
        config = config or settings.vehicle_api
        self._base_url = config.vehicle_api_url.rstrip("/")
        self._api_key = config.vehicle_api_key
        self._timeout = httpx.Timeout(config.vehicle_api_timeout, connect=5.0)

    async def fetch(self, reg_number: str) -> VehicleAttributes:
        """Look up a registration.

        Raises:
            VehicleNotFound: The provider does not know this registration.
            UpstreamUnavailable: Any other failure (config, network, 5xx, auth).
        """
        if not self._api_key:
            logger.error("Vehicle API key is not configured")
            raise UpstreamUnavailable("Vehicle lookup is not configured. Please try again later.")

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(
                    f"{self._base_url}/vehicledata/ukvehicledata",
                    params={"apikey": self._api_key, "vrm": reg_number.upper()},
                )
                response.raise_for_status()
                payload: dict[str, Any] = response.json()

        except ValueError as exc:
            # 2xx with a non-JSON body, e.g. a gateway error page
            logger.warning("Vehicle API returned a non-JSON body for %s", _mask(reg_number))
            await self._emit_lookup(reg_number, outcome="invalid_payload")
            raise UpstreamUnavailable("Vehicle lookup failed. Please try again shortly.") from exc

        except httpx.HTTPStatusError as exc:
            code = exc.response.status_code
            await self._emit_lookup(reg_number, outcome=f"http_{code}")
            if code in _NOT_FOUND_STATUSES:
                logger.info("Vehicle API: registration %s not found (HTTP %s)", _mask(reg_number), code)
                raise VehicleNotFound(f"No vehicle found for registration {reg_number}.") from exc
            logger.warning("Vehicle API HTTP error %s for %s", code, _mask(reg_number))
            raise UpstreamUnavailable("Vehicle lookup failed. Please try again shortly.") from exc

        except httpx.TimeoutException as exc:
            logger.warning("Vehicle API timeout for %s", _mask(reg_number))
            await self._emit_lookup(reg_number, outcome="timeout")
            raise UpstreamUnavailable("Vehicle lookup timed out. Please try again shortly.") from exc

        except httpx.HTTPError as exc:
            logger.warning("Vehicle API transport error for %s: %s", _mask(reg_number), exc)
            await self._emit_lookup(reg_number, outcome="transport_error")
            raise UpstreamUnavailable("Vehicle lookup failed. Please try again shortly.") from exc

        attributes = self._parse_response(reg_number, payload)
        if attributes is None:
            await self._emit_lookup(reg_number, outcome="incomplete")
            raise VehicleNotFound(f"Vehicle not found or data is incomplete for {reg_number}.")

        await self._emit_lookup(reg_number, outcome="ok")
        return attributes

    def _parse_response(self, reg_number: str, payload: dict[str, Any]) -> VehicleAttributes | None:
        """Normalize either payload shape; None when no make is present."""
        if not isinstance(payload, dict):
            return None

        registration = payload.get("VehicleRegistration")
        if isinstance(registration, dict):
            dimensions = payload.get("Dimensions") or {}
            smmt = payload.get("SmmtDetails") or {}
            if not registration.get("Make"):
                return None
            return VehicleAttributes(
                registration=registration.get("Vrm") or reg_number,
                make=registration.get("Make"),
                model=registration.get("Model"),
                colour=registration.get("Colour"),
                year_of_manufacture=_to_int(registration.get("YearOfManufacture")),
                fuel_type=registration.get("FuelType"),
                engine_capacity=registration.get("EngineCapacity"),
                wheel_plan=registration.get("WheelPlan"),
                body_style=smmt.get("BodyStyle"),
                kerb_weight=_to_decimal(dimensions.get("KerbWeight")),
                gross_weight=_to_decimal(registration.get("GrossWeight")),
                raw_response=payload,
            )

        # DVLA vehicle-enquiry shape
        if not payload.get("make"):
            return None
        engine_capacity = payload.get("engineCapacity")
        return VehicleAttributes(
            registration=payload.get("registrationNumber") or reg_number,
            make=payload.get("make"),
            model=payload.get("model"),
            colour=payload.get("colour"),
            year_of_manufacture=_to_int(payload.get("yearOfManufacture")),
            fuel_type=payload.get("fuelType"),
            engine_capacity=str(engine_capacity) if engine_capacity is not None else None,
            wheel_plan=payload.get("wheelplan"),
            revenue_weight=_to_decimal(payload.get("revenueWeight")),
            raw_response=payload,
        )

    async def _emit_lookup(self, reg_number: str, outcome: str) -> None:
        await emit(SystemEvent(
            event_type=EventType.VEHICLE_LOOKUP,
            data={"registration": _mask(reg_number), "outcome": outcome},
            source_module="integrations.vehicle.client",
        ))


# Module-level singleton
vehicle_client = VehicleDataClient()
