"""
Prompt templates for card generation.
"""

from collections.abc import Sequence

from ticker.models.api import CardCategory, UserProfile

SYSTEM_PROMPT = (
    "You are a financial education assistant that generates personalized, "
    "beginner-friendly investment recommendations in JSON format."
)

# interest -> (stock guidance, idea guidance)
INTEREST_GUIDANCE: dict[str, tuple[str, str]] = {
    "technology": (
        "Recommend tech stocks: semiconductors (NVDA, AMD), cloud (MSFT, AMZN), "
        "AI/ML companies, cybersecurity (CRWD, PANW), software (CRM, ADBE)",
        "Tech business ideas: SaaS tools, mobile apps, automation services, "
        "AI-powered solutions, dev tools",
    ),
    "healthcare": (
        "Healthcare stocks: biotech (MRNA, REGN), medical devices (ABT, MDT), "
        "pharma (PFE, JNJ), health tech (TDOC, VEEV)",
        "Healthcare ideas: telemedicine platforms, medical billing software, "
        "health apps, elder care services, wellness products",
    ),
    "finance": (
        "Finance stocks: fintech (SQ, PYPL), traditional banks (JPM, BAC), "
        "asset managers (BLK, SCHW), insurance (PGR, TRV)",
        "Finance ideas: personal finance apps, investment tools, accounting software, "
        "payment processing, financial education",
    ),
    "ecommerce": (
        "E-commerce stocks: marketplaces (AMZN, ETSY), payment (SHOP, PYPL), "
        "logistics (UPS, FDX), retail (WMT, TGT)",
        "E-commerce ideas: niche online stores, subscription boxes, dropshipping, "
        "marketplace platforms, DTC brands",
    ),
    "creative": (
        "Creative/Media stocks: streaming (NFLX, DIS), gaming (RBLX, EA), "
        "design tools (ADBE), social media (META)",
        "Creative ideas: content creation tools, design services, online courses, "
        "creator platforms, digital products",
    ),
}

DEFAULT_GUIDANCE = "Generate diverse recommendations that could appeal to a beginner investor"

STOCK_EXAMPLE = """[
  {
    "type": "stock",
    "title": "NVIDIA",
    "ticker": "NVDA",
    "price": "$875.32",
    "change": "+2.4%",
    "tagline": "Chips fueling AI innovation",
    "simpleExplainer": "NVIDIA powers AI technology used in self-driving cars and more.",
    "whatToExpect": "Stock can be volatile due to AI developments.",
    "goodReasons": ["Leading AI chip manufacturer", "Strong demand from tech companies"],
    "concerns": ["Market dependency on AI trends", "High competition risk"],
    "timeline": "3-5 years",
    "riskLevel": "Medium-High",
    "beginnerTip": "Invest in NVIDIA for potential growth in the AI industry.",
    "sources": [
      {"name": "Yahoo Finance", "url": "https://finance.yahoo.com/quote/NVDA"}
    ],
    "getStarted": [
      {"name": "Fidelity", "description": "Full-service broker", "url": "https://fidelity.com"}
    ]
  }
]"""

IDEA_EXAMPLE = """[
  {
    "type": "idea",
    "title": "Telemedicine Platform for Seniors",
    "category": "Healthcare Technology",
    "investment": "$20K - $50K",
    "tagline": "Connect seniors with doctors online for convenient care",
    "simpleExplainer": "Seniors struggle to visit doctors. You could create an app for virtual consultations.",
    "whatToExpect": "It may take 6-12 months to gain user trust and traction.",
    "goodReasons": ["Growing telemedicine market", "Seniors value convenience and safety"],
    "concerns": ["User-friendly interface for seniors", "Telemedicine regulations"],
    "timeline": "12-18 months to break even",
    "riskLevel": "Medium",
    "beginnerTip": "Research user needs thoroughly before building the platform.",
    "sources": [
      {"name": "American Telemedicine Association", "url": "https://www.americantelemed.org"}
    ],
    "getStarted": [
      {"name": "Doxy.me", "description": "Free telemedicine platform", "url": "https://doxy.me"}
    ]
  }
]"""

_STOCK_DIVERSITY = """- Include a MIX of company sizes: large cap, mid cap and small cap
- Include DIFFERENT sectors: tech, healthcare, finance, consumer, energy, etc.
- Include DIFFERENT investment themes: growth, value, dividend, innovation
- DO NOT just recommend the most popular tech stocks (NVDA, AAPL, MSFT, GOOGL, META)
- Include some lesser-known but solid companies"""

_IDEA_DIVERSITY = """- Include a MIX of business types: SaaS, e-commerce, services, products, marketplaces
- Include DIFFERENT industries related to user interests
- Include DIFFERENT investment levels across the range
- DO NOT just recommend "AI startup" or "app idea" - be SPECIFIC
- Each idea should be DISTINCTLY different from others"""

_STOCK_ACCURACY = """- Use REAL ticker symbols that are currently traded on NYSE/NASDAQ
- Verify companies are active and publicly traded
- If you're unsure about a stock, choose a different one"""

_IDEA_ACCURACY = """- Investment ranges must be realistic for the business type
- Timeline must be achievable (12-24 months typical)
- Consider actual market demand and competition"""


def interest_guidance(interests: Sequence[str], category: CardCategory) -> str:
    """Targeting hints for the interests we have guidance for."""
    index = 0 if category == CardCategory.STOCK else 1
    lines = [
        INTEREST_GUIDANCE[interest.lower()][index]
        for interest in interests
        if interest.lower() in INTEREST_GUIDANCE
    ]
    return "\n".join(lines) if lines else DEFAULT_GUIDANCE


def build_prompt(
    profile: UserProfile,
    category: CardCategory,
    count: int,
    exclude: Sequence[str] = (),
    rotation_theme: str = "",
) -> str:
    """Render the user prompt for one generation request."""
    is_stock = category == CardCategory.STOCK
    kind = "stocks" if is_stock else "business ideas"
    interests = ", ".join(profile.interests)

    exclude_instruction = ""
    if exclude:
        label = (
            "DO NOT RECOMMEND THESE STOCKS (user has seen them)"
            if is_stock
            else "DO NOT RECOMMEND IDEAS WITH THESE TITLES"
        )
        exclude_instruction = f"\n\n{label}: {', '.join(exclude)}"

    rotation_instruction = f"\n\nTODAY'S FOCUS: {rotation_theme}" if rotation_theme else ""

    return f"""Generate {count} DIVERSE and UNIQUE personalized {kind} recommendations for a beginner investor.

USER PROFILE:
- Investment budget: {profile.investment_amount}
- Risk tolerance: {profile.risk_level}
- Interests: {interests}{exclude_instruction}{rotation_instruction}

RELEVANCE STRATEGY:
{interest_guidance(profile.interests, category)}

DIVERSITY REQUIREMENTS:
{_STOCK_DIVERSITY if is_stock else _IDEA_DIVERSITY}

ACCURACY REQUIREMENTS:
{_STOCK_ACCURACY if is_stock else _IDEA_ACCURACY}

STRICT REQUIREMENTS:
1. Every recommendation MUST clearly relate to user's interests
2. Be SPECIFIC - avoid generic recommendations
3. Use REAL data - valid tickers, realistic prices, working URLs

URLs MUST BE REAL: full https:// URLs, NO # placeholders, NO fake URLs.

Return ONLY a valid JSON array. Each item must follow this exact structure:

{STOCK_EXAMPLE if is_stock else IDEA_EXAMPLE}

Return ONLY the JSON array with NO markdown formatting."""
