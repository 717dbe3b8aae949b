"""Monthly advisor reports from an external text-generation service.

The service is reached through the :class:`ReportGenerator` protocol, so the
rest of the package (and its tests) never touches the network. Whatever text
comes back is validated against :class:`FinancialReport`; anything that does
not fit is rejected and the caller gets ``Nothing()`` instead of a report.
"""

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, List, Literal, Optional, Protocol, Sequence

from google import genai
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from budget_core import config
from budget_core.domain import BudgetConfig, Number, Transaction, utcnow, validate_budget
from budget_core.errors import ExternalServiceFailure
from budget_core.functional import Maybe, Nothing, Some

logger = logging.getLogger(__name__)

ReportStatus = Literal["Under Budget", "Near Budget", "Over Budget"]


def _json_number(value: Any) -> Any:
    # Decimal would otherwise accept "80" and " 80 " as well
    if isinstance(value, (str, bool)):
        raise ValueError("amounts must be JSON numbers")
    return value


Amount = Annotated[Decimal, BeforeValidator(_json_number)]


class ReportBreakdownItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category: str = Field(min_length=1)
    amount: Amount = Field(ge=0)
    percentage: str = Field(pattern=r"^\d+(\.\d+)?%$")  # e.g. "15%"


class FinancialReport(BaseModel):
    # the service answers in camelCase (totalIncome, netSavings, ...)
    model_config = ConfigDict(extra="forbid", alias_generator=to_camel)

    summary: str = Field(min_length=1)
    total_income: Amount = Field(ge=0)
    total_expense: Amount = Field(ge=0)
    net_savings: Amount
    breakdown: List[ReportBreakdownItem]
    tips: List[str]
    status: ReportStatus


class ReportGenerator(Protocol):
    """Anything that can turn a ledger into raw report text."""

    async def generate(
        self, transactions: Sequence[Transaction], budget: BudgetConfig, month: str
    ) -> str:
        ...


def month_label(when: Optional[datetime] = None) -> str:
    """'October 2026' style label for the month containing ``when``."""
    return (when or utcnow()).strftime("%B %Y")


def build_report_prompt(
    transactions: Sequence[Transaction],
    budget: BudgetConfig,
    month: str,
    now: Optional[datetime] = None,
) -> str:
    payload = json.dumps([t.to_dict() for t in transactions])
    return f"""
You are a financial advisor.
Generate a structured JSON financial report for the user based on the following data.
The user's monthly budget is {budget.limit}.

Transactions:
{payload}

Current Date Context: {(now or utcnow()).isoformat()}
Requested Report Month: {month}

Return ONLY valid JSON with this structure:
{{
  "summary": "A 2-3 sentence executive summary of their financial health.",
  "totalIncome": number,
  "totalExpense": number,
  "netSavings": number,
  "breakdown": [
      {{ "category": "Food", "amount": 100, "percentage": "10%" }}
  ],
  "tips": ["Tip 1", "Tip 2", "Tip 3"],
  "status": "Under Budget" | "Near Budget" | "Over Budget"
}}
"""


def parse_report(text: Optional[str]) -> FinancialReport:
    """Validate raw service output, raising ExternalServiceFailure if it does not fit."""
    if not text or not text.strip():
        raise ExternalServiceFailure("report service returned an empty response")
    try:
        return FinancialReport.model_validate_json(text)
    except ValidationError as e:
        raise ExternalServiceFailure(
            f"report response failed validation ({e.error_count()} errors)"
        ) from e


async def generate_report(
    generator: ReportGenerator,
    transactions: Sequence[Transaction],
    budget: BudgetConfig,
    month: str,
) -> Maybe[FinancialReport]:
    """Ask ``generator`` for a report; Nothing() if it fails in any way.

    The budget is validated up front and InvalidBudgetConfig propagates, since
    that is a caller error rather than a service failure. There is no retry.
    """
    validate_budget(budget)
    snapshot = tuple(transactions)
    try:
        text = await generator.generate(snapshot, budget, month)
        report = parse_report(text)
    except ExternalServiceFailure as e:
        logger.error("Report for %s unavailable: %s", month, e)
        return Nothing()
    except Exception:
        logger.exception("Report generator raised while building the %s report", month)
        return Nothing()

    logger.info("Report for %s generated with status %s", month, report.status)
    return Some(report)


class GeminiReportGenerator:
    """ReportGenerator backed by the Gemini API (google-genai)."""

    def __init__(self, api_key: Optional[str] = None, model: str = config.GEMINI_MODEL, client=None):
        self.api_key = api_key if api_key is not None else config.get_api_key()
        self.model = model
        self._client = client

    def _get_client(self):
        if self._client is None:
            if not self.api_key:
                raise ExternalServiceFailure("GEMINI_API_KEY is not set")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate(
        self, transactions: Sequence[Transaction], budget: BudgetConfig, month: str
    ) -> str:
        client = self._get_client()
        response = await client.aio.models.generate_content(
            model=self.model,
            contents=build_report_prompt(transactions, budget, month),
            config={"response_mime_type": "application/json"},
        )
        return response.text or ""

    async def budget_health_comment(self, total_expense: Number, limit: Number) -> str:
        """One-sentence comment on spending; empty string if the service fails."""
        prompt = (
            f"The user has spent {total_expense} out of their {limit} budget.\n"
            "Provide a 1-sentence quick alert or compliment.\n"
            "If over budget, be urgent. If close, be cautionary. If under, be congratulatory."
        )
        try:
            client = self._get_client()
            response = await client.aio.models.generate_content(model=self.model, contents=prompt)
        except Exception as e:
            logger.warning("Budget health comment unavailable: %s", e)
            return ""
        return (response.text or "").strip()
