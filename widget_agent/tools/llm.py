"""
Utilities for talking to a chat model via LangChain.

``get_llm`` lazily builds a chat model from environment variables: Azure
OpenAI when the ``AZURE_OPENAI_*`` variables are present (API key or Entra ID
client credentials), the standard OpenAI model otherwise. ``ask_llm`` returns
plain text; ``complete_structured`` returns an instance of a pydantic schema
and backs the pipeline's structured-completion capability. Requests and
responses are logged.
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Callable, Dict, Optional, TypeVar

from azure.identity import ClientSecretCredential
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import AzureChatOpenAI, ChatOpenAI
from pydantic import BaseModel

from .langfuse_tracing import traced_tool

logger = logging.getLogger("widget_agent.llm")

SchemaT = TypeVar("SchemaT", bound=BaseModel)

# Cache multiple LLM instances keyed by model name to avoid reinitialising
_cached_llms: Dict[str, Any] = {}


def _entra_token_provider() -> Optional[Callable[[], str]]:
    tenant_id = os.getenv("AZURE_TENANT_ID")
    client_id = os.getenv("AZURE_CLIENT_ID")
    client_secret = os.getenv("AZURE_CLIENT_SECRET")
    if not (tenant_id and client_id and client_secret):
        return None

    credential = ClientSecretCredential(
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
    )
    scope = os.getenv("AZURE_OPENAI_SCOPE", "https://cognitiveservices.azure.com/.default")

    # LangChain expects a callable returning a bearer token string.
    def token_provider() -> str:
        return credential.get_token(scope).token

    return token_provider


def _build_azure_llm(model_name: Optional[str]) -> Any:
    azure_base = os.getenv("AZURE_OPENAI_API_BASE")
    azure_version = os.getenv("AZURE_OPENAI_API_VERSION")
    azure_deployment = model_name or os.getenv("AZURE_OPENAI_DEPLOYMENT_NAME")
    if not (azure_base and azure_version and azure_deployment):
        return None

    token_provider = _entra_token_provider()
    azure_key = os.getenv("AZURE_OPENAI_API_KEY")
    if token_provider is None and not azure_key:
        return None

    auth = "Entra ID client credentials" if token_provider is not None else "API key"
    logger.info(f"Initialising Azure OpenAI model ({auth}, deployment={azure_deployment})")
    return AzureChatOpenAI(
        azure_endpoint=azure_base,
        azure_deployment=azure_deployment,
        api_version=azure_version,
        api_key=None if token_provider is not None else azure_key,
        azure_ad_token_provider=token_provider,
        temperature=0,
    )


def _build_openai_llm(model_name: Optional[str]) -> Any:
    openai_key = os.getenv("OPENAI_API_KEY")
    if not openai_key:
        return None
    kwargs: Dict[str, Any] = {"api_key": openai_key, "temperature": 0}
    if model_name:
        kwargs["model"] = model_name
    logger.info("Initialising standard OpenAI model")
    return ChatOpenAI(**kwargs)


def get_llm(model_name: Optional[str] = None) -> Any:
    """Return a lazily constructed chat model instance.

    Args:
        model_name: Optional Azure deployment or OpenAI model name. If
            ``None``, ``AZURE_OPENAI_DEPLOYMENT_NAME`` or the OpenAI default
            model is used.

    Returns:
        An ``AzureChatOpenAI`` or ``ChatOpenAI`` instance, or ``None`` if no
        credentials are configured.
    """
    key = model_name or "__default__"
    if key in _cached_llms:
        return _cached_llms[key]

    llm = _build_azure_llm(model_name) or _build_openai_llm(model_name)
    if llm is None:
        logger.warning("No OpenAI API keys found.  Language model features will be disabled.")
        return None
    _cached_llms[key] = llm
    return llm


def _build_messages(prompt: str, system_prompt: Optional[str]) -> list[BaseMessage]:
    messages: list[BaseMessage] = []
    if system_prompt:
        messages.append(SystemMessage(content=system_prompt))
    messages.append(HumanMessage(content=prompt))
    return messages


def _require_llm(model_name: Optional[str]) -> Any:
    llm = get_llm(model_name)
    if llm is None:
        raise RuntimeError(
            "No language model configured.  Set the appropriate environment variables."
        )
    return llm


def ask_llm(
    prompt: str,
    *,
    model_name: Optional[str] = None,
    system_prompt: Optional[str] = None,
) -> str:
    """Send a prompt to the configured language model and return the text reply.

    Raises if no model is configured or the request fails.
    """
    llm = _require_llm(model_name)
    logger.info(f"LLM request (model={model_name}): {prompt}")
    try:
        response = llm.invoke(_build_messages(prompt, system_prompt))
        answer = response.content if hasattr(response, "content") else str(response)
        logger.info(f"LLM response: {answer}")
        return answer
    except Exception:
        logger.exception("Error during LLM request")
        raise


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """Best-effort extraction of a JSON object from an LLM response."""
    if not text:
        return None
    fenced = re.search(r"```json\s*(\{.*?\})\s*```", text, flags=re.DOTALL | re.IGNORECASE)
    if fenced:
        snippet = fenced.group(1)
    else:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            return None
        snippet = text[start : end + 1]
    try:
        obj = json.loads(snippet)
    except json.JSONDecodeError:
        return None
    return obj if isinstance(obj, dict) else None


@traced_tool("llm.complete_structured", capture_output=False)
def complete_structured(
    prompt: str,
    schema: type[SchemaT],
    *,
    model_name: Optional[str] = None,
    system_prompt: Optional[str] = None,
) -> SchemaT:
    """Ask the model for an instance of ``schema``.

    Uses the model's native structured output when available and otherwise
    parses a JSON object out of a plain completion. One attempt only; any
    failure propagates to the caller.
    """
    llm = _require_llm(model_name)
    messages = _build_messages(prompt, system_prompt)
    logger.info(f"Structured LLM request (model={model_name}, schema={schema.__name__}): {prompt}")

    try:
        structured_llm = llm.with_structured_output(schema)
    except NotImplementedError:
        structured_llm = None

    if structured_llm is not None:
        result = structured_llm.invoke(messages)
        logger.info(f"Structured LLM response: {result}")
        return result if isinstance(result, schema) else schema.model_validate(result)

    raw = ask_llm(
        f"{prompt}\n\nReturn ONLY a JSON object matching this schema:\n"
        f"{json.dumps(schema.model_json_schema())}",
        model_name=model_name,
        system_prompt=system_prompt,
    )
    obj = extract_json_object(raw)
    if obj is None:
        raise ValueError(f"LLM reply did not contain a JSON object for {schema.__name__}")
    return schema.model_validate(obj)
