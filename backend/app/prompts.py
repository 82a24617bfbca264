EXTRACTION_PROMPT = """You extract chart data from a user's description of a dataset.

OUTPUT FORMAT (STRICT):
Return a SINGLE JSON object only. No prose, no code fences, no explanations.
Use valid JSON with double-quoted keys, no trailing commas.

SCHEMA:
{"data": [{"label": "<category>", "value": <number>}, ...]}

RULES:
- One entry per category or time period mentioned, in the order given
- "label" is a short string taken from the text (e.g. "Jan", "Product A")
- "value" is a plain JSON number:
  * expand suffixes: 12K -> 12000, 3M -> 3000000, 50% -> 0.5
  * drop currency symbols and thousands separators: "$1,200" -> 1200
- Never invent categories or values that are not in the text
- If the text contains no usable data, return {"data": []}
"""


def build_extraction_message(prompt: str, chart_type: str) -> str:
    return f"""TARGET CHART TYPE: {chart_type}

USER TEXT:
{prompt}
"""
