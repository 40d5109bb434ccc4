"""
shortcheck.llm - Compliance analyzer client.

Sends extracted content to a multimodal LLM through litellm and validates
the verdict it returns.
"""

from __future__ import annotations
