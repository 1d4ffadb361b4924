# prompts/__init__.py
from .base import NOT_DOCUMENTED, SOAP_KEYS, SYSTEM_PROMPT
from .summary import generate_prompt as generate_summary_prompt

__all__ = ["NOT_DOCUMENTED", "SOAP_KEYS", "SYSTEM_PROMPT", "generate_summary_prompt"]
