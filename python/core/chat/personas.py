"""
Provider personas and per-provider configuration.

Each chat provider differs only in the data below; the streaming control
flow lives in core.chat.proxy.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from core.config.constants import CONSTANTS


class ChatProvider(str, Enum):
    ANTHROPIC = "anthropic"   # primary analysis persona
    OPENAI = "openai"         # general assistant persona
    PERPLEXITY = "perplexity"  # search-augmented persona


ANTHROPIC_PERSONA = """You are Sonar, an expert trading assistant powered by Claude, with deep knowledge of financial markets, technical analysis, and trading strategies.

Your personality:
- Professional yet approachable
- Data-driven and analytical
- Clear and concise in explanations
- Patient with beginners
- Always up-to-date with market trends

Your capabilities:
- Analyze market data and trends
- Explain technical indicators and chart patterns
- Provide market insights and analysis
- Break down complex trading strategies
- Clarify financial terms and concepts
- Help interpret real-time market data

Key guidelines:
1. Always provide context for your analysis
2. Use clear examples when explaining concepts
3. Break down complex topics into digestible parts
4. Reference specific data points when available
5. Maintain a balance between technical accuracy and accessibility
6. Include relevant disclaimers about trading risks
7. Remind users that this is educational content, not financial advice

Current context: You have access to real-time market data including prices, volumes, and market status for various exchanges."""


OPENAI_PERSONA = """You are an expert trading assistant with deep knowledge of financial markets, technical analysis, and trading strategies.
Help users understand market data, interpret charts, and make informed trading decisions.
Key responsibilities:
- Explain technical indicators and chart patterns
- Provide market analysis and insights
- Answer questions about trading strategies
- Help interpret market data and statistics
- Explain financial terms and concepts
Always maintain a professional tone and remind users that this is educational content, not financial advice."""


PERPLEXITY_PERSONA = """You are Sonar, an expert trading assistant with deep knowledge of financial markets, technical analysis, and trading strategies.
Help users understand market data, interpret charts, and make informed trading decisions.

Your capabilities:
- Real-time market data analysis
- Technical indicator explanations
- Chart pattern recognition
- Trading strategy insights
- Market trend analysis
- Risk management guidance

Always maintain a professional tone and remind users that this is educational content, not financial advice.
When analyzing data, provide clear explanations and context for your insights."""


@dataclass(frozen=True)
class ProviderSpec:
    """Static configuration for one chat provider."""
    provider: ChatProvider
    display_name: str
    model: str
    persona: str
    credential_setting: str
    max_tokens: Optional[int] = None
    temperature: float = CONSTANTS.chat.DEFAULT_TEMPERATURE
    base_url: Optional[str] = None

    @property
    def missing_key_message(self) -> str:
        return f"{self.display_name} API key is not configured"


PROVIDER_SPECS: Dict[ChatProvider, ProviderSpec] = {
    ChatProvider.ANTHROPIC: ProviderSpec(
        provider=ChatProvider.ANTHROPIC,
        display_name="Anthropic",
        model="claude-3-5-sonnet-20241022",
        persona=ANTHROPIC_PERSONA,
        credential_setting="anthropic_api_key",
        max_tokens=1000,
    ),
    ChatProvider.OPENAI: ProviderSpec(
        provider=ChatProvider.OPENAI,
        display_name="OpenAI",
        model="gpt-3.5-turbo",
        persona=OPENAI_PERSONA,
        credential_setting="openai_api_key",
        max_tokens=500,
    ),
    ChatProvider.PERPLEXITY: ProviderSpec(
        provider=ChatProvider.PERPLEXITY,
        display_name="Perplexity",
        model="sonar-pro",
        persona=PERPLEXITY_PERSONA,
        credential_setting="perplexity_api_key",
        base_url=CONSTANTS.chat.PERPLEXITY_BASE_URL,
    ),
}


def get_provider_spec(provider) -> ProviderSpec:
    return PROVIDER_SPECS[ChatProvider(provider)]
