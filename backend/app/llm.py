"""
LLM helpers for the AI parse service.

Providers disagree on where the text lives and how clean the JSON is, so
responses go through text extraction, code-fence stripping, a balanced
bracket scan and a small JSON repair pass before giving up.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from app.llm_loader import LLMConfigError, get_chat_model, get_provider_name
from app.prompts import EXTRACTION_PROMPT, build_extraction_message
from core.models import ParsedEntry
from core.utils import to_float

logger = logging.getLogger("uvicorn.error")


class LLMError(RuntimeError):
    pass


def _get_llm(temperature: float = 0.0):
    try:
        return get_chat_model(temperature=temperature)
    except LLMConfigError as exc:
        raise LLMError(str(exc)) from exc


# ---------- response text ----------


def _content_text(content: Any) -> str:
    """Flatten LC message content (str | list[chunk] | dict | AIMessage)."""
    if content is None:
        return ""
    if isinstance(content, AIMessage):
        return _content_text(content.content)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for chunk in content:
            if isinstance(chunk, dict) and isinstance(chunk.get("text"), str):
                parts.append(chunk["text"])
            else:
                parts.append(str(chunk))
        return "".join(parts)
    if isinstance(content, dict):
        for key in ("text", "content"):
            if isinstance(content.get(key), str):
                return content[key]
    return str(content)


def response_text(resp: Any) -> str:
    """
    Text from a chat response, checking in order:
      - resp.content
      - resp.additional_kwargs.reasoning_content (NVIDIA)
      - resp.additional_kwargs.content
    """
    text = _content_text(getattr(resp, "content", None))
    if text:
        return text
    extras = getattr(resp, "additional_kwargs", None) or {}
    if isinstance(resp, dict):
        text = _content_text(resp.get("content"))
        if text:
            return text
        extras = resp.get("additional_kwargs") or {}
    if isinstance(extras, dict):
        for key in ("reasoning_content", "content"):
            val = extras.get(key)
            if isinstance(val, str) and val.strip():
                return val
    return ""


# ---------- JSON recovery ----------

_re_code_fence = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE | re.MULTILINE)
_re_trailing_commas = re.compile(r",(\s*[}\]])")
_re_single_quoted = re.compile(r"'([^'\\]*(?:\\.[^'\\]*)*)'")
_re_py_literals = re.compile(r"\b(?:None|True|False)\b")
_PY_TO_JSON = {"None": "null", "True": "true", "False": "false"}


def strip_code_fences(text: str) -> str:
    return _re_code_fence.sub("", text.strip())


def first_balanced_json(text: str) -> str:
    """The first balanced {...} or [...] block in ``text``."""
    start = next((i for i, ch in enumerate(text) if ch in "{["), None)
    if start is None:
        raise ValueError("no JSON start in response")
    depth = 0
    for j in range(start, len(text)):
        if text[j] in "{[":
            depth += 1
        elif text[j] in "}]":
            depth -= 1
            if depth == 0:
                return text[start : j + 1]
    teaser = text[start : start + 200].replace("\n", "\\n")
    raise ValueError(f"unterminated JSON (teaser): {teaser}")


def _repair_json(block: str) -> Any:
    fixed = _re_trailing_commas.sub(r"\1", block)
    fixed = _re_py_literals.sub(lambda m: _PY_TO_JSON[m.group(0)], fixed)
    fixed = _re_single_quoted.sub(lambda m: '"' + m.group(1).replace('"', '\\"') + '"', fixed)
    return json.loads(fixed)


def load_json_text(text: str) -> Any:
    """Decode model output, tolerating fences, surrounding prose and sloppy JSON."""
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        raise ValueError("empty LLM response text")
    try:
        return json.loads(cleaned)
    except ValueError:
        pass
    block = first_balanced_json(cleaned)
    try:
        return json.loads(block)
    except ValueError:
        try:
            return _repair_json(block)
        except ValueError as e:
            teaser = block[:200].replace("\n", "\\n")
            raise ValueError(f"json_parse_failed after repair: {e}; teaser={teaser}") from e


# ---------- calls ----------


def chat_json(system_prompt: str, user_message: str) -> Any:
    """One JSON-mode round trip; returns the decoded object."""
    llm = _get_llm().bind(response_format={"type": "json_object"})
    messages = [
        SystemMessage(system_prompt + "\nReturn ONE JSON object. No prose, no code fences."),
        HumanMessage(user_message),
    ]
    try:
        resp = llm.invoke(messages)
    except Exception as e:
        raise LLMError(f"invoke_failed ({get_provider_name()}): {e}") from e

    text = response_text(resp)
    if not text.strip():
        raise LLMError(f"no_content: additional={getattr(resp, 'additional_kwargs', None)}")
    logger.debug("LLM raw text teaser: %r", text[:200])
    try:
        return load_json_text(text)
    except ValueError as e:
        raise LLMError(str(e)) from e


def entries_from_payload(payload: Any) -> List[ParsedEntry]:
    """Accepts {"data": [...]} or a bare list of {label, value} records."""
    items = payload.get("data") if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        return []
    entries: List[ParsedEntry] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        label = str(item.get("label") or item.get("name") or "").strip()
        value = to_float(item.get("value"))
        if label and value is not None:
            entries.append(ParsedEntry(label=label, value=value))
    return entries


def extract_entries(prompt: str, chart_type: str) -> List[ParsedEntry]:
    """Ask the configured chat model for (label, value) entries."""
    payload = chat_json(EXTRACTION_PROMPT, build_extraction_message(prompt, chart_type))
    return entries_from_payload(payload)
