"""
Chat Assistant Service

Generates the assistant's reply for the loyalty chat widget using Claude
(Anthropic Messages API).

Features:
- Loyalty-store system prompt with today's date
- Read-only tools over the customer's points, catalog, stores and bookings
- Tool use loop for multi-step answers
- Conversation history bounded by message count and estimated tokens

Date: 2025-10-20
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import anthropic

from loyalty_api.core.config import settings
from loyalty_api.domain.chat import ChatMessage
from loyalty_api.services.chat_tools import execute_tool

logger = logging.getLogger(__name__)

FALLBACK_RESPONSE = "Sorry, I couldn't come up with an answer. Could you rephrase your question?"


def estimate_tokens(text: str) -> int:
    """Rough token estimation: ~4 chars per token."""
    return len(text or "") // 4


def limit_history(
    history: List[Dict[str, str]],
    max_messages: Optional[int] = None,
    max_tokens: Optional[int] = None,
) -> tuple:
    """
    Limit conversation history sent with each request.

    Strategy:
    1. Keep at most max_messages recent messages
    2. Drop the oldest while the estimated tokens exceed max_tokens,
       always keeping at least 2

    Returns:
        Tuple of (limited_history, estimated_tokens)
    """
    if not history:
        return [], 0

    max_messages = max_messages or settings.CHAT_MAX_HISTORY_MESSAGES
    max_tokens = max_tokens or settings.CHAT_MAX_HISTORY_TOKENS

    limited = history[-max_messages:] if len(history) > max_messages else history.copy()
    total_tokens = sum(estimate_tokens(msg.get("content", "")) for msg in limited)

    while total_tokens > max_tokens and len(limited) > 2:
        removed = limited.pop(0)
        total_tokens -= estimate_tokens(removed.get("content", ""))

    if len(history) > len(limited):
        logger.info(f"History trimmed: {len(history)} -> {len(limited)} messages (~{total_tokens} tokens)")

    return limited, total_tokens


def history_from_messages(messages: List[ChatMessage]) -> List[Dict[str, str]]:
    """
    Stored chat rows -> Anthropic message dicts.

    'ai' rows become 'assistant'. Consecutive rows of the same role are
    merged and a leading assistant turn is dropped, since the API expects
    alternating turns that open with the user.
    """
    history: List[Dict[str, str]] = []
    for message in messages:
        role = "user" if message.message_type == "user" else "assistant"
        content = message.content or ""
        if not content.strip():
            continue
        if history and history[-1]["role"] == role:
            history[-1]["content"] += "\n\n" + content
        else:
            history.append({"role": role, "content": content})

    while history and history[0]["role"] != "user":
        history.pop(0)
    return history


def get_system_prompt(customer_name: Optional[str] = None) -> str:
    """System prompt with today's date so relative dates resolve correctly."""
    today = datetime.now().strftime("%Y-%m-%d")
    greeting = f"You are talking with {customer_name}." if customer_name else ""

    return f"""You are the shopping and loyalty assistant for our store's customer app.
Today is {today}. {greeting}

You help members with:
- Their loyalty points, tier and what they need for the next tier
- Finding products in the catalog
- Finding store locations, opening status and the services each store offers
- Their upcoming service appointments

Use the tools to look up real data before answering questions about points,
products, stores or appointments. Never invent prices, balances or opening
hours. If a tool returns an error, say you could not retrieve that
information right now.

You cannot place orders, redeem rewards or change bookings; point the
customer to the matching page of the app for that.

Keep answers short and friendly. Format prices with two decimals."""


TOOLS = [
    {
        "name": "get_points_balance",
        "description": "Gets the customer's current loyalty points balance, tier, points needed for the next tier and tier benefits.",
        "input_schema": {
            "type": "object",
            "properties": {},
            "required": []
        }
    },
    {
        "name": "search_products",
        "description": "Searches the product catalog by text and optional category. Returns price, stock status and rating.",
        "input_schema": {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Words to match in product name, description or tags"
                },
                "category": {
                    "type": "string",
                    "description": "Optional exact product category"
                },
                "limit": {
                    "type": "integer",
                    "description": "Max products to return (default 5, max 10)"
                }
            },
            "required": []
        }
    },
    {
        "name": "find_stores",
        "description": "Finds store locations by name, city or address, optionally only those offering a service or open right now.",
        "input_schema": {
            "type": "object",
            "properties": {
                "search": {
                    "type": "string",
                    "description": "Store name, city or address fragment"
                },
                "service": {
                    "type": "string",
                    "description": "Service the store must offer (e.g. 'Repair')"
                },
                "open_now": {
                    "type": "boolean",
                    "description": "Only stores open at this moment"
                }
            },
            "required": []
        }
    },
    {
        "name": "get_upcoming_appointments",
        "description": "Lists the customer's next scheduled or confirmed service appointments.",
        "input_schema": {
            "type": "object",
            "properties": {},
            "required": []
        }
    },
]


@dataclass
class ChatResult:
    """Result of generating one assistant reply"""
    response: str
    tools_used: List[str]
    model: str
    input_tokens: int
    output_tokens: int
    estimated_cost_usd: float = 0.0
    context_messages: int = 0
    metadata: Dict = field(default_factory=dict)

    def __post_init__(self):
        # Claude Haiku 4.5 pricing: $1/1M input, $5/1M output
        input_cost = (self.input_tokens / 1_000_000) * 1.0
        output_cost = (self.output_tokens / 1_000_000) * 5.0
        self.estimated_cost_usd = round(input_cost + output_cost, 6)
        self.metadata = {
            "model": self.model,
            "toolsUsed": self.tools_used,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "estimatedCostUsd": self.estimated_cost_usd,
        }


class ChatAssistantService:
    """
    Service for answering loyalty-app questions with Claude.
    """

    def __init__(self, client: Optional[anthropic.Anthropic] = None):
        if client is None:
            if not settings.ANTHROPIC_API_KEY:
                raise ValueError("ANTHROPIC_API_KEY environment variable not set")
            client = anthropic.Anthropic(api_key=settings.ANTHROPIC_API_KEY)

        self.client = client
        self.model = settings.CLAUDE_MODEL
        self.max_tokens = settings.CHAT_MAX_TOKENS
        logger.info(f"ChatAssistantService initialized with model: {self.model}")

    def _create(self, system: str, messages: list):
        return self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system,
            tools=TOOLS,
            messages=messages
        )

    def generate_reply(
        self,
        message: str,
        customer_id: int,
        history: Optional[List[Dict[str, str]]] = None,
        customer_name: Optional[str] = None,
    ) -> ChatResult:
        """
        Answer a customer's message.

        Args:
            message: The new user message
            customer_id: Owner of the session; every tool runs for this customer
            history: Earlier turns as {"role": "user"|"assistant", "content": "..."}

        Returns:
            ChatResult with the reply text and usage metadata
        """
        tools_used = []
        total_input_tokens = 0
        total_output_tokens = 0
        history_tokens = 0

        messages = []
        if history:
            limited_history, history_tokens = limit_history(history)
            for msg in limited_history:
                messages.append({"role": msg["role"], "content": msg["content"]})
            while messages and messages[0]["role"] != "user":
                messages.pop(0)

        # A trailing user turn in history would break role alternation
        if messages and messages[-1]["role"] == "user":
            messages[-1]["content"] += "\n\n" + message
        else:
            messages.append({"role": "user", "content": message})

        logger.info(f"Context: {len(messages)} messages, ~{history_tokens + estimate_tokens(message)} tokens")

        system = get_system_prompt(customer_name)
        response = self._create(system, messages)
        total_input_tokens += response.usage.input_tokens
        total_output_tokens += response.usage.output_tokens

        while response.stop_reason == "tool_use":
            tool_results = []
            for block in response.content:
                if block.type != "tool_use":
                    continue

                logger.info(f"Executing tool: {block.name} with input: {block.input}")
                tools_used.append(block.name)
                tool_results.append({
                    "type": "tool_result",
                    "tool_use_id": block.id,
                    "content": execute_tool(block.name, block.input, customer_id)
                })

            messages.append({"role": "assistant", "content": response.content})
            messages.append({"role": "user", "content": tool_results})

            response = self._create(system, messages)
            total_input_tokens += response.usage.input_tokens
            total_output_tokens += response.usage.output_tokens

        text_content = None
        for block in response.content:
            if getattr(block, "type", None) == "text" and block.text:
                text_content = block.text
                break

        if not text_content:
            text_content = FALLBACK_RESPONSE

        logger.info(f"Reply generated. Tools used: {tools_used}, Tokens: {total_input_tokens}/{total_output_tokens}")

        return ChatResult(
            response=text_content,
            tools_used=tools_used,
            model=self.model,
            input_tokens=total_input_tokens,
            output_tokens=total_output_tokens,
            context_messages=len(messages)
        )


_service_instance: Optional[ChatAssistantService] = None


def get_chat_service() -> ChatAssistantService:
    """
    Get the singleton chat assistant instance.

    Raises:
        ValueError: ANTHROPIC_API_KEY is not configured
    """
    global _service_instance
    if _service_instance is None:
        _service_instance = ChatAssistantService()
    return _service_instance
