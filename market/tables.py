"""Static random-draw tables -- sector trends, market news, company actions.

Every table keyed by sector is a dict over the Sector enum and is checked
for completeness at import time, so a sector without a trend range fails
on startup rather than mid-tick.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.models.market import NewsImpact, Sector


@dataclass(frozen=True)
class Range:
    """Closed interval a uniform draw is taken from."""

    min: float
    max: float


@dataclass(frozen=True)
class MarketNewsEvent:
    """A market-wide headline that shifts the impact of whole sectors."""

    headline: str
    impact: NewsImpact
    sectors: tuple[Sector, ...]
    magnitude: float


@dataclass(frozen=True)
class CompanyAction:
    """A corporate action a controlling shareholder can trigger."""

    action: str
    description: str
    impact: float


# Overall market movement per tick, before momentum
MARKET_SENTIMENT = Range(-0.008, 0.008)

SECTOR_TRENDS: dict[Sector, Range] = {
    Sector.TECH: Range(-0.015, 0.018),
    Sector.RETAIL: Range(-0.010, 0.011),
    Sector.FINANCE: Range(-0.008, 0.009),
    Sector.AUTO: Range(-0.013, 0.014),
    Sector.MEDIA: Range(-0.014, 0.015),
    Sector.ENERGY: Range(-0.016, 0.013),
    Sector.HEALTH: Range(-0.009, 0.011),
    Sector.FOOD: Range(-0.007, 0.008),
    Sector.TELECOM: Range(-0.008, 0.009),
    Sector.AEROSPACE: Range(-0.018, 0.015),
}

MARKET_NEWS_EVENTS: tuple[MarketNewsEvent, ...] = (
    MarketNewsEvent("Fed announces surprise interest rate hike", "negative", (Sector.FINANCE, Sector.RETAIL), 0.03),
    MarketNewsEvent("Breakthrough in quantum computing announced", "positive", (Sector.TECH,), 0.04),
    MarketNewsEvent("Data privacy scandal rocks social media companies", "negative", (Sector.TECH, Sector.MEDIA), 0.05),
    MarketNewsEvent("New renewable energy tax credits approved", "positive", (Sector.ENERGY,), 0.03),
    MarketNewsEvent("Automotive chip shortage worsens", "negative", (Sector.AUTO, Sector.TECH), 0.035),
    MarketNewsEvent("Streaming services see record subscriber growth", "positive", (Sector.MEDIA,), 0.04),
    MarketNewsEvent("Healthcare reform bill passes", "mixed", (Sector.HEALTH,), 0.025),
    MarketNewsEvent("Global supply chain disruptions continue", "negative", (Sector.RETAIL, Sector.AUTO, Sector.FOOD), 0.03),
    MarketNewsEvent("New AI breakthrough announced", "positive", (Sector.TECH,), 0.045),
    MarketNewsEvent("Consumer spending reaches all-time high", "positive", (Sector.RETAIL, Sector.FOOD), 0.025),
    MarketNewsEvent("Major cybersecurity breach reported", "negative", (Sector.TECH, Sector.FINANCE), 0.04),
    MarketNewsEvent("Space tourism takes off", "positive", (Sector.AEROSPACE,), 0.055),
    MarketNewsEvent("Fast food workers announce nationwide strike", "negative", (Sector.FOOD,), 0.025),
    MarketNewsEvent("Mobile payment usage skyrockets", "positive", (Sector.FINANCE, Sector.TECH), 0.03),
    MarketNewsEvent("Self-driving car achieves safety milestone", "positive", (Sector.AUTO, Sector.TECH), 0.035),
    MarketNewsEvent("Streaming price wars intensify", "mixed", (Sector.MEDIA,), 0.02),
    MarketNewsEvent("Generic drug approvals accelerate", "negative", (Sector.HEALTH,), 0.025),
    MarketNewsEvent("5G rollout exceeds expectations", "positive", (Sector.TELECOM, Sector.TECH), 0.03),
    MarketNewsEvent("Oil reserves discovery announced", "positive", (Sector.ENERGY,), 0.035),
    MarketNewsEvent("Record inflation reported", "negative", (Sector.RETAIL, Sector.FOOD, Sector.FINANCE), 0.035),
)

COMPANY_ACTIONS: tuple[CompanyAction, ...] = (
    CompanyAction("Stock Buyback", "Company repurchases shares to return value to shareholders", 0.03),
    CompanyAction("Dividend Increase", "Company raises dividend payout to shareholders", 0.025),
    CompanyAction("Expansion Announcement", "Company announces new markets or products", 0.035),
    CompanyAction("Cost-Cutting", "Company implements efficiency measures to reduce expenses", 0.02),
    CompanyAction("Layoffs", "Company reduces workforce to lower costs", -0.015),
    CompanyAction("Executive Change", "Company announces new leadership", 0.01),
    CompanyAction("Product Recall", "Company recalls product due to defects or safety concerns", -0.04),
    CompanyAction("Missed Earnings", "Company reports earnings below expectations", -0.06),
    CompanyAction("Earnings Beat", "Company reports earnings above expectations", 0.05),
    CompanyAction("Strategic Partnership", "Company forms alliance with another business", 0.03),
    CompanyAction("Acquisition", "Company purchases another business", 0.02),
    CompanyAction("Legal Settlement", "Company resolves legal dispute", 0.015),
    CompanyAction("Data Breach", "Company suffers security incident exposing data", -0.05),
    CompanyAction("New Patent", "Company secures intellectual property protection", 0.025),
    CompanyAction("Research Breakthrough", "Company makes significant technological advancement", 0.045),
)

# Real-world symbols used to seed chart history
REAL_WORLD_TICKERS: dict[str, str] = {
    "MSOFT": "MSFT",
    "APLE": "AAPL",
    "GOOG": "GOOGL",
    "AMZN": "AMZN",
    "MTBK": "META",
    "NFLX": "NFLX",
    "TSLA": "TSLA",
    "VZN": "VZ",
    "PFE": "PFE",
    "XOM": "XOM",
    "DIS": "DIS",
    "SBUX": "SBUX",
    "PYPL": "PYPL",
    "NKE": "NKE",
    "SONO": "SONO",
    "CRPT": "COIN",
    "RBLX": "RBLX",
    "DASH": "DASH",
    "RIVN": "RIVN",
    "ABNB": "ABNB",
    "SPCE": "SPCE",
}

SECTOR_TICKERS: dict[Sector, str] = {
    Sector.TECH: "QQQ",
    Sector.RETAIL: "XRT",
    Sector.FINANCE: "XLF",
    Sector.AUTO: "CARZ",
    Sector.MEDIA: "XLC",
    Sector.ENERGY: "XLE",
    Sector.HEALTH: "XLV",
    Sector.FOOD: "XLP",
    Sector.TELECOM: "IYZ",
    Sector.AEROSPACE: "ITA",
}

MARKET_TICKER = "SPY"

for _table_name, _table in (("SECTOR_TRENDS", SECTOR_TRENDS), ("SECTOR_TICKERS", SECTOR_TICKERS)):
    _missing = set(Sector) - set(_table)
    if _missing:
        raise RuntimeError(f"{_table_name} has no entry for: {sorted(s.value for s in _missing)}")


def real_world_ticker(stock_id: str, sector: Sector | None = None) -> str:
    """Resolve an instrument to a real symbol, falling back to its sector ETF."""
    if stock_id in REAL_WORLD_TICKERS:
        return REAL_WORLD_TICKERS[stock_id]
    if sector is not None:
        return SECTOR_TICKERS[sector]
    return MARKET_TICKER


def market_status_message(percent_change: float) -> str:
    """Headline describing the composite's latest move."""
    if percent_change >= 2:
        return "Market Surging: Enthusiastic buying pushes stocks to significant gains"
    if percent_change >= 1:
        return "Market Up: Positive sentiment drives broad market gains"
    if percent_change >= 0.2:
        return "Market Positive: Modest gains across most sectors"
    if percent_change > -0.2:
        return "Market Flat: Sideways trading with minimal movement"
    if percent_change > -1:
        return "Market Dipping: Slight selling pressure across stocks"
    if percent_change > -2:
        return "Market Down: Broad selling pushes most stocks lower"
    return "Market Plunging: Significant selling pressure across all sectors"
