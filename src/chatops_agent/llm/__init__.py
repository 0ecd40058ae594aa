"""Language-model gateway."""

from chatops_agent.llm.gateway import DEFAULT_SYSTEM_PROMPT, LlmGateway, LlmGatewayError

__all__ = ["DEFAULT_SYSTEM_PROMPT", "LlmGateway", "LlmGatewayError"]
