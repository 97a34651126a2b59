# app/services/external/rate_engine.py
import logging
from datetime import date
from decimal import Decimal
from typing import Protocol

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from app.core.config import RATE_ENGINE_URL, EXTERNAL_TIMEOUT_SECONDS
from app.core.exceptions import DegradedError

logger = logging.getLogger(__name__)


class RateQuote(BaseModel):
    zone: str
    basic_amt: Decimal
    discount_amt: Decimal = Decimal("0.00")
    misc_amt: Decimal = Decimal("0.00")
    fuel_amt: Decimal = Decimal("0.00")
    cgst_amt: Decimal = Decimal("0.00")
    sgst_amt: Decimal = Decimal("0.00")
    igst_amt: Decimal = Decimal("0.00")


class RateEngine(Protocol):
    async def quote(
        self,
        *,
        account_code: str,
        sector: str | None,
        service: str | None,
        shipment_date: date,
        weight: Decimal,
    ) -> RateQuote:
        ...


class HttpRateEngine:
    """Tariff lookup over HTTP. Every failure surfaces as DegradedError."""

    def __init__(self, base_url: str = RATE_ENGINE_URL, timeout: float = EXTERNAL_TIMEOUT_SECONDS):
        self.base_url = base_url
        self.timeout = timeout

    async def quote(
        self,
        *,
        account_code: str,
        sector: str | None,
        service: str | None,
        shipment_date: date,
        weight: Decimal,
    ) -> RateQuote:
        if not self.base_url:
            raise DegradedError("rate_engine", "RATE_ENGINE_URL is not configured")

        params = {
            "account_code": account_code,
            "sector": sector or "",
            "service": service or "",
            "date": shipment_date.isoformat(),
            "weight": str(weight),
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.base_url, params=params)
                response.raise_for_status()
                return RateQuote.model_validate(response.json())
        except httpx.HTTPError as e:
            logger.warning("Rate lookup failed", extra={"account_code": account_code, "error": str(e)})
            raise DegradedError("rate_engine", str(e)) from e
        except (ValueError, PydanticValidationError) as e:
            logger.warning("Rate lookup returned an invalid payload", extra={"account_code": account_code})
            raise DegradedError("rate_engine", f"invalid quote: {e}") from e


default_rate_engine = HttpRateEngine()
