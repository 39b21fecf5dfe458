"""Utility functions."""

import json
import re


def extract_json(text: str) -> dict:
    """
    Clean Markdown, ```json, comments.
    Return Json object.
    """
    if not text:
        raise ValueError("Empty model output")

    # Unwrap ```json ... ``` fences, keeping their content
    text = re.sub(r"```(?:json)?\s*(.*?)```", r"\1", text, flags=re.S)

    # Find first { and last }
    start = text.find("{")
    end = text.rfind("}")

    if start == -1 or end == -1 or end < start:
        raise ValueError("No JSON object detected")

    cleaned = text[start:end + 1]

    # Trailing commas are a common model mistake
    cleaned = re.sub(r",\s*([}\]])", r"\1", cleaned)

    return json.loads(cleaned)


def elapsed_ms(start: float, end: float) -> float:
    return round((end - start) * 1000, 2)
