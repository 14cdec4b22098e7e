"""
Payload schemas for external exchange responses using Pydantic.

Responses are validated at the boundary so malformed data is rejected before
any price reaches the evaluator.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Numeric = Union[str, float, int]


class _Payload(BaseModel):
    """Exchange payloads carry many fields we ignore."""

    model_config = ConfigDict(extra="ignore")


class MexcTicker(_Payload):
    symbol: Optional[str] = None
    price: Numeric


class MexcErrorPayload(_Payload):
    code: int
    msg: str = ""


class BitmartTicker(_Payload):
    symbol: Optional[str] = None
    last_price: Numeric


class BitmartData(_Payload):
    tickers: List[BitmartTicker] = Field(default_factory=list)


class BitmartEnvelope(_Payload):
    code: int
    message: str = ""
    data: Optional[BitmartData] = None


class GateioTicker(_Payload):
    currency_pair: Optional[str] = None
    last: Numeric


class GateioErrorPayload(_Payload):
    label: str
    message: str = ""


class PoloniexPrice(_Payload):
    symbol: Optional[str] = None
    price: Numeric


class PoloniexErrorPayload(_Payload):
    code: int
    message: str = ""
