"""Starting catalog -- the listed companies and the sector indices over them."""

from __future__ import annotations

import logging

from core.models.market import Instrument, MarketIndex, Sector
from core.protocols import RandomSource

logger = logging.getLogger(__name__)

Q1 = [1, 4, 7, 10]
Q2 = [2, 5, 8, 11]
Q3 = [3, 6, 9, 12]

COMPANIES: list[dict] = [
    {
        "id": "MSOFT", "name": "MicroWeave", "full_name": "MicroWeave Technologies, Inc.",
        "sector": Sector.TECH, "base_price": 337.50, "volatility": 0.012, "beta": 0.94,
        "description": "Leading software company known for office productivity tools and operating systems.",
        "logo": "🪟", "market_cap": 2_507_000_000_000, "total_shares": 7_428_400_000,
        "pe": 35.8, "revenue": 211_900_000_000, "dividend_yield": 0.73,
        "earnings": {"day": 25, "months": Q1},
        "dividend": {"day": 10, "months": Q2, "amount": 0.62},
        "news": [
            ("MicroWeave announces new cloud partnership", 0.018, 0.05),
            ("MicroWeave OS security flaw discovered", -0.025, 0.03),
            ("MicroWeave acquires AI startup", 0.022, 0.04),
        ],
    },
    {
        "id": "APLE", "name": "Pear", "full_name": "Pear Inc.",
        "sector": Sector.TECH, "base_price": 182.85, "volatility": 0.014, "beta": 1.15,
        "description": "Consumer electronics, software and services company with a dedicated following.",
        "logo": "🍐", "market_cap": 2_876_000_000_000, "total_shares": 15_729_000_000,
        "pe": 30.2, "revenue": 383_300_000_000, "dividend_yield": 0.52,
        "earnings": {"day": 15, "months": Q2},
        "dividend": {"day": 5, "months": Q2, "amount": 0.24},
        "news": [
            ("Pear unveils next-gen smartphone", 0.032, 0.05),
            ("Pear production delays reported", -0.028, 0.03),
            ("Pear services growth exceeds expectations", 0.024, 0.04),
        ],
    },
    {
        "id": "GOOG", "name": "Boogle", "full_name": "Boogle LLC",
        "sector": Sector.TECH, "base_price": 143.65, "volatility": 0.013, "beta": 1.08,
        "description": "Search engine and digital advertising giant with diverse technology interests.",
        "logo": "🔍", "market_cap": 1_832_000_000_000, "total_shares": 12_754_000_000,
        "pe": 26.3, "revenue": 282_800_000_000, "dividend_yield": 0.0,
        "earnings": {"day": 20, "months": Q1},
        "news": [
            ("Boogle facing new antitrust lawsuit", -0.031, 0.035),
            ("Boogle AI assistant capabilities expanded", 0.027, 0.04),
            ("Boogle ad revenue hits record high", 0.024, 0.045),
        ],
    },
    {
        "id": "AMZN", "name": "Jungle", "full_name": "Jungle Marketplace, Inc.",
        "sector": Sector.RETAIL, "base_price": 128.75, "volatility": 0.016, "beta": 1.22,
        "description": "E-commerce and cloud computing giant with expanding interests in various industries.",
        "logo": "📦", "market_cap": 1_324_000_000_000, "total_shares": 10_284_000_000,
        "pe": 59.5, "revenue": 513_900_000_000, "dividend_yield": 0.0,
        "earnings": {"day": 28, "months": Q1},
        "news": [
            ("Jungle opens new fulfillment centers", 0.021, 0.04),
            ("Jungle cloud division reports record growth", 0.032, 0.05),
            ("Jungle workers plan strike at multiple locations", -0.027, 0.03),
        ],
    },
    {
        "id": "MTBK", "name": "FaceScroll", "full_name": "MetaBook, Inc.",
        "sector": Sector.MEDIA, "base_price": 312.75, "volatility": 0.018, "beta": 1.35,
        "description": "Social media conglomerate focusing on virtual reality and connectivity.",
        "logo": "👥", "market_cap": 807_000_000_000, "total_shares": 2_581_000_000,
        "pe": 28.1, "revenue": 134_900_000_000, "dividend_yield": 0.0,
        "earnings": {"day": 22, "months": Q1},
        "news": [
            ("FaceScroll faces new privacy regulations", -0.024, 0.04),
            ("FaceScroll virtual reality sales surge", 0.031, 0.035),
            ("FaceScroll user growth stagnates", -0.022, 0.03),
        ],
    },
    {
        "id": "NFLX", "name": "Webflix", "full_name": "Webflix Streaming Services, Inc.",
        "sector": Sector.MEDIA, "base_price": 417.25, "volatility": 0.019, "beta": 1.27,
        "description": "Streaming entertainment service with global reach and original content production.",
        "logo": "🎬", "market_cap": 185_500_000_000, "total_shares": 444_600_000,
        "pe": 44.8, "revenue": 33_700_000_000, "dividend_yield": 0.0,
        "earnings": {"day": 18, "months": Q1},
        "news": [
            ("Webflix subscriber numbers exceed expectations", 0.043, 0.04),
            ("Webflix raises subscription prices", -0.024, 0.045),
            ("Webflix original series wins major awards", 0.027, 0.035),
        ],
    },
    {
        "id": "TSLA", "name": "Coil", "full_name": "Coil Motors, Inc.",
        "sector": Sector.AUTO, "base_price": 235.45, "volatility": 0.028, "beta": 1.92,
        "description": "Electric vehicle manufacturer also involved in renewable energy and space exploration.",
        "logo": "⚡", "market_cap": 748_600_000_000, "total_shares": 3_179_000_000,
        "pe": 78.4, "revenue": 96_800_000_000, "dividend_yield": 0.0,
        "earnings": {"day": 26, "months": Q1},
        "news": [
            ("Coil announces revolutionary new battery technology", 0.052, 0.03),
            ("Coil production misses targets", -0.046, 0.04),
            ("Coil expands charging network globally", 0.038, 0.035),
        ],
    },
    {
        "id": "VZN", "name": "Horizon", "full_name": "Horizon Communications",
        "sector": Sector.TELECOM, "base_price": 41.30, "volatility": 0.012,
        "description": "Telecommunications company providing cellular, broadband and digital services.",
        "logo": "📡", "market_cap": 173_500_000_000, "total_shares": 4_200_970_000,
        "earnings": {"day": 19, "months": Q1},
        "dividend": {"day": 15, "months": Q2, "amount": 0.65},
        "news": [
            ("Horizon completes largest 5G rollout to date", 0.031, 0.04),
            ("Horizon faces network outage in major markets", -0.028, 0.025),
            ("Horizon to acquire regional fiber provider", 0.024, 0.03),
        ],
    },
    {
        "id": "PFE", "name": "Fizor", "full_name": "Fizor Pharmaceuticals",
        "sector": Sector.HEALTH, "base_price": 36.85, "volatility": 0.014,
        "description": "Global pharmaceutical corporation developing vaccines and medications.",
        "logo": "💊", "market_cap": 207_500_000_000, "total_shares": 5_631_206_000,
        "earnings": {"day": 15, "months": Q2},
        "dividend": {"day": 10, "months": Q3, "amount": 0.40},
        "news": [
            ("Fizor drug receives FDA approval", 0.055, 0.035),
            ("Fizor recalls treatment after safety concerns", -0.048, 0.02),
            ("Fizor vaccine shows promising trial results", 0.043, 0.03),
        ],
    },
    {
        "id": "XOM", "name": "PetroCorp", "full_name": "PetroCorp Energy",
        "sector": Sector.ENERGY, "base_price": 106.40, "volatility": 0.017,
        "description": "Multinational oil and gas corporation with exploration, production and distribution operations.",
        "logo": "⛽", "market_cap": 432_600_000_000, "total_shares": 4_067_670_000,
        "earnings": {"day": 28, "months": Q1},
        "dividend": {"day": 10, "months": Q3, "amount": 0.91},
        "news": [
            ("PetroCorp discovers major new oil reserves", 0.042, 0.03),
            ("PetroCorp faces new environmental regulations", -0.035, 0.045),
            ("PetroCorp expands renewable energy division", 0.028, 0.035),
        ],
    },
    {
        "id": "DIS", "name": "Kingsley", "full_name": "Kingsley Entertainment",
        "sector": Sector.MEDIA, "base_price": 90.15, "volatility": 0.018,
        "description": "Entertainment conglomerate operating theme parks, movie studios, and streaming services.",
        "logo": "🏰", "market_cap": 164_800_000_000, "total_shares": 1_828_841_000,
        "earnings": {"day": 10, "months": Q2},
        "dividend": {"day": 20, "months": Q1, "amount": 0.30},
        "news": [
            ("Kingsley+ streaming subscribers surge", 0.046, 0.04),
            ("Kingsley announces new theme park expansion", 0.035, 0.035),
            ("Kingsley movie underperforms at box office", -0.032, 0.03),
        ],
    },
    {
        "id": "SBUX", "name": "MoonDollars", "full_name": "MoonDollars Coffee Co.",
        "sector": Sector.FOOD, "base_price": 98.70, "volatility": 0.016,
        "description": "Global coffee chain with locations in hundreds of countries.",
        "logo": "☕", "market_cap": 113_100_000_000, "total_shares": 1_146_000_000,
        "earnings": {"day": 5, "months": Q2},
        "dividend": {"day": 25, "months": Q2, "amount": 0.53},
        "news": [
            ("MoonDollars launches innovative new beverage line", 0.038, 0.045),
            ("MoonDollars same-store sales decline", -0.033, 0.03),
            ("MoonDollars accelerates global expansion", 0.036, 0.035),
        ],
    },
    {
        "id": "PYPL", "name": "BuddyPay", "full_name": "BuddyPay Holdings",
        "sector": Sector.FINANCE, "base_price": 63.80, "volatility": 0.019,
        "description": "Digital payment platform enabling online money transfers and purchases.",
        "logo": "💸", "market_cap": 71_100_000_000, "total_shares": 1_114_420_000,
        "earnings": {"day": 12, "months": Q2},
        "news": [
            ("BuddyPay expands cryptocurrency support", 0.048, 0.035),
            ("BuddyPay transaction volume hits record high", 0.043, 0.04),
            ("BuddyPay faces new regulatory scrutiny", -0.037, 0.03),
        ],
    },
    {
        "id": "NKE", "name": "Swoosh", "full_name": "Swoosh Athletics",
        "sector": Sector.RETAIL, "base_price": 102.50, "volatility": 0.015,
        "description": "Athletic footwear and apparel multinational with iconic branding.",
        "logo": "👟", "market_cap": 157_900_000_000, "total_shares": 1_540_480_000,
        "earnings": {"day": 28, "months": Q3},
        "dividend": {"day": 15, "months": Q1, "amount": 0.34},
        "news": [
            ("Swoosh signs record-breaking athlete endorsement", 0.041, 0.03),
            ("Swoosh factory workers strike in Southeast Asia", -0.035, 0.025),
            ("Swoosh direct-to-consumer sales surge", 0.039, 0.04),
        ],
    },
    {
        "id": "SONO", "name": "AudioWave", "full_name": "AudioWave Sound Systems",
        "sector": Sector.TECH, "base_price": 15.40, "volatility": 0.022,
        "description": "Premium audio equipment manufacturer specializing in wireless speaker systems.",
        "logo": "🔊", "market_cap": 1_970_000_000, "total_shares": 127_920_000,
        "earnings": {"day": 8, "months": Q2},
        "news": [
            ("AudioWave releases revolutionary new speaker technology", 0.058, 0.03),
            ("AudioWave faces component shortage", -0.042, 0.035),
            ("AudioWave partners with major streaming services", 0.045, 0.03),
        ],
    },
    {
        "id": "CRPT", "name": "CoinDash", "full_name": "CoinDash Crypto Exchange",
        "sector": Sector.FINANCE, "base_price": 128.65, "volatility": 0.045,
        "description": "Leading cryptocurrency exchange platform and blockchain technology company.",
        "logo": "🪙", "market_cap": 24_200_000_000, "total_shares": 188_110_000,
        "earnings": {"day": 20, "months": Q2},
        "news": [
            ("CoinDash adds support for emerging cryptocurrencies", 0.062, 0.04),
            ("CoinDash faces security breach", -0.075, 0.02),
            ("CoinDash expands institutional services", 0.054, 0.035),
        ],
    },
    {
        "id": "RBLX", "name": "BlockWorld", "full_name": "BlockWorld Interactive",
        "sector": Sector.TECH, "base_price": 38.70, "volatility": 0.028,
        "description": "Online gaming platform allowing users to develop and play games in a virtual universe.",
        "logo": "🎮", "market_cap": 23_400_000_000, "total_shares": 604_650_000,
        "earnings": {"day": 15, "months": Q2},
        "news": [
            ("BlockWorld daily active users reach all-time high", 0.056, 0.04),
            ("BlockWorld introduces new developer monetization features", 0.042, 0.035),
            ("BlockWorld faces increased scrutiny over child safety", -0.047, 0.025),
        ],
    },
    {
        "id": "DASH", "name": "SwiftBite", "full_name": "SwiftBite Delivery Services",
        "sector": Sector.FOOD, "base_price": 82.90, "volatility": 0.026,
        "description": "Food delivery platform connecting restaurants with customers via mobile app.",
        "logo": "🍔", "market_cap": 32_200_000_000, "total_shares": 388_420_000,
        "earnings": {"day": 10, "months": Q2},
        "news": [
            ("SwiftBite expands into grocery delivery", 0.047, 0.035),
            ("SwiftBite driver protests impact major markets", -0.039, 0.03),
            ("SwiftBite partners with major restaurant chains", 0.043, 0.04),
        ],
    },
    {
        "id": "RIVN", "name": "FlowEV", "full_name": "FlowEV Motors",
        "sector": Sector.AUTO, "base_price": 17.30, "volatility": 0.032,
        "description": "Electric vehicle startup focused on trucks and SUVs with advanced autonomous features.",
        "logo": "🚙", "market_cap": 16_300_000_000, "total_shares": 942_200_000,
        "earnings": {"day": 10, "months": Q3},
        "news": [
            ("FlowEV production capacity doubles with new factory", 0.065, 0.03),
            ("FlowEV delays vehicle launch", -0.058, 0.035),
            ("FlowEV secures major fleet order", 0.072, 0.025),
        ],
    },
    {
        "id": "ABNB", "name": "StayCation", "full_name": "StayCation Rentals, Inc.",
        "sector": Sector.RETAIL, "base_price": 126.80, "volatility": 0.023,
        "description": "Online marketplace for short and long-term home and experience rentals worldwide.",
        "logo": "🏡", "market_cap": 81_500_000_000, "total_shares": 642_740_000,
        "earnings": {"day": 5, "months": Q2},
        "news": [
            ("StayCation bookings surge to record levels", 0.054, 0.04),
            ("StayCation faces new rental regulations in major cities", -0.046, 0.035),
            ("StayCation introduces innovative new booking features", 0.038, 0.03),
        ],
    },
    {
        "id": "SPCE", "name": "GalaxyTours", "full_name": "GalaxyTours Holdings",
        "sector": Sector.AEROSPACE, "base_price": 2.70, "volatility": 0.038,
        "description": "Space tourism company developing spacecraft for commercial suborbital flights.",
        "logo": "🚀", "market_cap": 990_000_000, "total_shares": 366_670_000,
        "earnings": {"day": 22, "months": Q2},
        "news": [
            ("GalaxyTours completes successful test flight", 0.085, 0.03),
            ("GalaxyTours delays commercial launch schedule", -0.074, 0.035),
            ("GalaxyTours secures major partnership with aerospace giant", 0.068, 0.025),
        ],
    },
]

# (id, name, description, logo, sector, base_value)
SECTOR_INDICES: list[tuple[str, str, str, str, Sector, float]] = [
    ("TECH", "Technology Index", "Tracks technology sector stocks", "💻", Sector.TECH, 15720.48),
    ("RETA", "Retail & Consumer", "Tracks retail and consumer goods companies", "🛒", Sector.RETAIL, 8652.17),
    ("FINS", "Financial Services", "Tracks financial sector companies", "💰", Sector.FINANCE, 5290.36),
    ("TRNP", "Transportation & Auto", "Tracks transportation and automotive companies", "🚗", Sector.AUTO, 4387.92),
]


def build_instrument(entry: dict, rng: RandomSource | None = None, history_points: int = 50) -> Instrument:
    """Create a live Instrument from a catalog entry.

    When `rng` is given the price history is pre-seeded with +/-5% noise
    around the base price so charts are not flat on the first tick.
    """
    fields = {k: v for k, v in entry.items() if k not in ("base_price", "news")}
    base = entry["base_price"]
    history = [base]
    if rng is not None:
        history = [base * (1 + rng.uniform(-0.05, 0.05)) for _ in range(history_points - 1)] + [base]

    return Instrument(
        **fields,
        current_price=base,
        price_history=history,
        volume=int(rng.random() * 10_000_000) if rng is not None else 0,
        day_high=base * 1.01,
        day_low=base * 0.99,
        week_high=base * 1.05,
        week_low=base * 0.95,
        news=[
            {"headline": headline, "impact": impact, "probability": probability}
            for headline, impact, probability in entry.get("news", [])
        ],
    )


def build_indices(instruments: list[Instrument]) -> list[MarketIndex]:
    """Sector indices over the given instruments. Sectors with no members are skipped."""
    indices = []
    for index_id, name, description, logo, sector, base_value in SECTOR_INDICES:
        members = [inst.id for inst in instruments if inst.sector == sector]
        if not members:
            logger.debug("Skipping index %s: no %s instruments", index_id, sector.value)
            continue
        indices.append(MarketIndex(
            id=index_id,
            name=name,
            description=description,
            logo=logo,
            members=members,
            base_value=base_value,
        ))
    return indices
