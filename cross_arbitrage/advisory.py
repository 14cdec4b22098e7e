"""
Advisory commentary for an evaluated route.

The adapter packages the evaluation, the network verdict and the legs into an
``AdvisoryContext`` and asks an ``AdvisoryGenerator`` for commentary, retrying
only while the generator reports itself unavailable (HTTP 503).
"""

import asyncio
import logging
from decimal import Decimal
from typing import List, Optional, Sequence

import aiohttp
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .constants import (
    DEFAULT_ADVISORY_MIN_SPREAD_PCT,
    DEFAULT_MAX_ATTEMPTS,
    SERVICE_UNAVAILABLE_STATUS,
)
from .exceptions import (
    AdvisoryGenerationError,
    NetworkError,
    RetryExhaustedError,
    TransientServiceError,
    ValidationError,
)
from .interfaces import AdvisoryGenerator
from .models import ArbitrageLeg, EvaluationResult, NetworkCompatibilityResult
from .retry import RetryExecutor
from .utils import format_spread

logger = logging.getLogger(__name__)


class NetworkVerdict(BaseModel):
    is_compatible: bool
    common_networks: List[str] = Field(default_factory=list)
    reasoning: str = ""


class AdvisoryContext(BaseModel):
    """Everything the advisor sees about one route"""

    asset_a: str
    exchange_a: str
    price_a: float = Field(gt=0)
    fee_a: float = Field(ge=0, lt=100)
    asset_b: str
    exchange_b: str
    price_b: float = Field(gt=0)
    fee_b: float = Field(ge=0, lt=100)
    mode: str
    initial_investment: float = Field(gt=0)
    final_usdt_value: float
    spread: float
    diagnosis: str
    network: NetworkVerdict

    model_config = {"extra": "forbid"}


class AdvisoryResponse(BaseModel):
    commentary: str = Field(min_length=1)


def build_context(
    evaluation: EvaluationResult,
    network_result: NetworkCompatibilityResult,
    legs: Sequence[ArbitrageLeg],
) -> AdvisoryContext:
    """Flatten an evaluation into the advisor's input schema."""
    if len(legs) != 2:
        raise ValidationError(f"Advisory needs exactly 2 legs, got {len(legs)}")
    leg_a, leg_b = legs
    initial = evaluation.final_value - evaluation.profit
    return AdvisoryContext(
        asset_a=leg_a.asset,
        exchange_a=leg_a.exchange.value,
        price_a=float(leg_a.price),
        fee_a=float(leg_a.fee_rate),
        asset_b=leg_b.asset,
        exchange_b=leg_b.exchange.value,
        price_b=float(leg_b.price),
        fee_b=float(leg_b.fee_rate),
        mode=evaluation.mode.value,
        initial_investment=float(initial),
        final_usdt_value=float(evaluation.final_value),
        spread=float(evaluation.net_spread_percent),
        diagnosis=evaluation.diagnosis.value,
        network=NetworkVerdict(
            is_compatible=network_result.is_compatible,
            common_networks=list(network_result.common_networks),
            reasoning=network_result.reasoning,
        ),
    )


class TemplateAdvisoryGenerator:
    """
    Deterministic advisor.

    Verdict rules: no common transfer network is "Not viable"; a net spread at
    or below ``min_spread_pct`` is "Risky"; anything else is "Viable".
    """

    def __init__(self, min_spread_pct: Decimal = Decimal(DEFAULT_ADVISORY_MIN_SPREAD_PCT)):
        self.min_spread_pct = float(min_spread_pct)

    async def generate(self, context: AdvisoryContext) -> str:
        spread = format_spread(context.spread)
        network = context.network
        strategy = (
            f"Buy {context.asset_a} on {context.exchange_a} and sell "
            f"{context.asset_b} on {context.exchange_b}"
        )

        if not network.is_compatible:
            return "\n".join([
                "Recommendation: Not viable.",
                f"{strategy}: the net spread is {spread}, but there is no usable transfer "
                f"network for {context.asset_a} between the two exchanges "
                f"({network.reasoning}).",
            ])

        if context.spread <= self.min_spread_pct:
            return "\n".join([
                "Recommendation: Risky.",
                f"{strategy}: the net spread of {spread} is too thin to absorb fees and "
                f"price movement while funds are in transit.",
                "- Risk: fees and volatility are likely to turn this into a loss.",
            ])

        return "\n".join([
            "Recommendation: Viable.",
            f"{strategy}: the net spread is {spread} "
            f"(${context.initial_investment:,.2f} -> ${context.final_usdt_value:,.2f}) "
            f"and funds can move over {', '.join(network.common_networks)}.",
            "- Risk: prices can move before the transfer settles; "
            "check withdrawal and deposit fees.",
        ])


class HttpAdvisoryGenerator:
    """Posts the context to an HTTP advisory service returning ``{"commentary": ...}``"""

    def __init__(
        self,
        endpoint_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_seconds: float = 30.0,
    ):
        self.endpoint_url = endpoint_url
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self):
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def generate(self, context: AdvisoryContext) -> str:
        session = await self._get_session()
        try:
            async with session.post(self.endpoint_url, json=context.model_dump()) as response:
                if response.status == SERVICE_UNAVAILABLE_STATUS:
                    raise TransientServiceError(
                        "Advisory service unavailable", endpoint=self.endpoint_url
                    )
                if response.status >= 400:
                    raise NetworkError(
                        f"Advisory service returned HTTP {response.status}",
                        endpoint=self.endpoint_url,
                        status_code=response.status,
                    )
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(
                f"Could not reach advisory service: {e}", endpoint=self.endpoint_url
            )
        except ValueError as e:
            raise NetworkError(
                f"Advisory service returned invalid JSON: {e}", endpoint=self.endpoint_url
            )

        try:
            return AdvisoryResponse.model_validate(payload).commentary
        except PydanticValidationError as e:
            raise NetworkError(
                f"Advisory service returned an unexpected payload: {e.error_count()} error(s)",
                endpoint=self.endpoint_url,
            )


class AdvisoryCommentaryAdapter:
    """Requests commentary with the shared 503-only retry policy"""

    def __init__(
        self,
        generator: AdvisoryGenerator,
        retry: Optional[RetryExecutor] = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.generator = generator
        self.retry = retry or RetryExecutor()
        self.max_attempts = max_attempts

    async def request_advisory(
        self,
        evaluation: EvaluationResult,
        network_result: NetworkCompatibilityResult,
        legs: Sequence[ArbitrageLeg],
    ) -> str:
        """
        Produce commentary for an evaluated route.

        Raises:
            AdvisoryGenerationError: If generation kept failing or failed permanently
        """
        try:
            context = build_context(evaluation, network_result, legs)
        except (PydanticValidationError, ValidationError) as e:
            raise AdvisoryGenerationError(f"Cannot build advisory context: {e}") from e

        logger.info(
            f"Requesting advisory for {context.asset_a} "
            f"{context.exchange_a} -> {context.exchange_b}"
        )

        async def attempt() -> str:
            commentary = await self.generator.generate(context)
            if not commentary or not commentary.strip():
                raise AdvisoryGenerationError("Advisory generator returned no commentary")
            return commentary

        try:
            return await self.retry.execute(
                attempt, max_attempts=self.max_attempts, description="advisory generation"
            )
        except RetryExhaustedError as e:
            raise AdvisoryGenerationError(
                f"advisory generation failed after {e.attempts} attempts",
                attempts=e.attempts,
                details={"last_error": str(e.last_error)},
            ) from e
        except AdvisoryGenerationError:
            raise
        except Exception as e:
            raise AdvisoryGenerationError(f"advisory generation failed: {e}", attempts=1) from e
