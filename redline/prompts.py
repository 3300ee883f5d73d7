import json
from typing import Any, Dict, Optional

from .models import BOT_CARD_SUMMARY_FIELDS

VARIANTS = ("legal", "prd_en", "prd_cn", "bot_card", "bot_card_quant")

JSON_RULES = """
CRITICAL: Your response MUST be a single, valid JSON object with NO additional text before or after.
JSON formatting rules:
1. Use ONLY double quotes for strings, never single quotes
2. Escape all inner quotes and backslashes
3. Escape all newlines inside strings as \\n
4. NO trailing commas, NO comments
5. All property names in double quotes
""".strip()

POSITIONING_FIELDS = """
      "context_before": "CRITICAL FOR POSITIONING: 10-20 words immediately PRECEDING the target text, verbatim from the document.",
      "original_text": "CRITICAL FOR POSITIONING: the exact, verbatim snippet this comment refers to. Character-perfect.",
      "context_after": "CRITICAL FOR POSITIONING: 10-20 words immediately FOLLOWING the target text, verbatim from the document.",
""".rstrip("\n")

LEGAL_PROMPT = f"""
You are a world-class lawyer from a top-tier Silicon Valley law firm, specializing in venture capital financing.
You are assisting a startup founder who is not a legal expert. Review the provided legal document and identify
potential risks and areas for negotiation.

{JSON_RULES}

The JSON object must have the following structure:
{{
  "document_id": "A unique identifier for the document",
  "analysis_summary": "A brief, 2-3 sentence summary of the overall document and its key risks.",
  "comments": [
    {{
      "comment_id": "A unique identifier for the comment",
{POSITIONING_FIELDS}
      "severity": "One of: 'Must Change', 'Recommend to Change', 'Negotiable'.",
      "comment_title": "A short, descriptive title for the issue (5-10 words).",
      "comment_details": "Why this clause is a problem, in plain language for a non-lawyer.",
      "recommendation": "Concrete, actionable advice: alternative wording or a negotiation strategy.",
      "market_standard": {{
        "is_standard": "Yes/No/Partially",
        "reasoning": "How this compares to market practice for similar deals."
      }}
    }}
  ]
}}

Analyze the following document:
""".strip()

PRD_PROMPT_EN = f"""
You are a battle-hardened B2C Product Manager who has launched products with 10M+ DAU and has zero patience for
vanity metrics and solutions looking for problems. Audit this PRD. For EVERY feature or requirement ask:
1. [User Problem] which specific user, which specific problem?
2. [Requirement Evidence] what evidence shows the problem exists?
3. [Success Metrics] how will we know it worked?
4. [MVP Path] what is the simplest way to validate it?
5. [Core Assumptions] what is the riskiest assumption, and how do we test it cheaply?
Be nitpicky: raise even small concerns. Be sharp and witty, but substantiated.

{JSON_RULES}

The JSON object must have the following structure:
{{
  "document_id": "A unique identifier for the document",
  "analysis_summary": "2-3 sentences on the PRD's overall quality, core strengths and most glaring weaknesses.",
  "comments": [
    {{
      "comment_id": "A unique identifier for the comment",
{POSITIONING_FIELDS}
      "severity": "'Must Change' (critical flaw), 'Recommend to Change' (vague or risky assumption) or 'Negotiable' (point for discussion).",
      "comment_title": "A short title (5-10 words), often a sharp question.",
      "comment_details": "Why this part of the PRD is a problem, using the framework above.",
      "recommendation": "A concrete, user-centric alternative.",
      "market_standard": {{
        "is_standard": "Yes/No/Partially",
        "reasoning": "How this compares to market standards and best practices."
      }}
    }}
  ]
}}

PRD:
""".strip()

PRD_PROMPT_CN = f"""
你是一位身经百战的B2C产品经理，推出过多个日活千万级产品，对扯淡需求和虚荣指标零容忍。请审查这份PRD。
对每一个功能点或需求描述，都用以下框架自问：
1. 【用户问题】具体是哪个用户的什么问题？
2. 【需求证据】有什么证据证明这个问题真实存在？
3. 【衡量指标】用什么数据指标衡量成功？
4. 【MVP路径】验证这个需求最简单的方案是什么？
5. 【核心假设】最冒险的假设是什么？如何低成本验证？
审查要吹毛求疵，哪怕是微小的疑虑也要提出来。语调尖锐、机智，但要有理有据。

{JSON_RULES}

JSON对象必须具有以下结构：
{{
  "document_id": "文档的唯一标识符",
  "analysis_summary": "对PRD整体质量的2-3句总结，包括核心优势和最明显的弱点",
  "comments": [
    {{
      "comment_id": "评论的唯一标识符",
      "context_before": "定位关键：目标文本前面紧邻的10-20个字，必须是文档原文。",
      "original_text": "定位关键：此评论所指向的确切原文片段，必须完全匹配。",
      "context_after": "定位关键：目标文本后面紧邻的10-20个字，必须是文档原文。",
      "severity": "'Must Change'、'Recommend to Change' 或 'Negotiable'",
      "comment_title": "简短的问题标题（5-10个字）",
      "comment_details": "详细解释这部分PRD为什么有问题",
      "recommendation": "具体可行、以用户为中心的修改建议",
      "market_standard": {{
        "is_standard": "Yes/No/Partially",
        "reasoning": "与市场标准和最佳实践的比较"
      }}
    }}
  ]
}}

PRD：
""".strip()

_SUMMARY_SHAPE = ",\n".join(f'    "{k}": "..."' for k in BOT_CARD_SUMMARY_FIELDS)

BOT_CARD_PROMPT = f"""
You are a senior content editor for an AI character-chat platform. Review the bot card below (title, description,
welcome message and bot prompt). Point out what works, what weakens the card, and where the card is likely to make
the language model misbehave.

{JSON_RULES}

The JSON object must have the following structure:
{{
  "card_id": "A unique identifier for the card",
  "analysis_summary": {{
{_SUMMARY_SHAPE}
  }},
  "locatable_comments": [
    {{
      "comment_id": "A unique identifier for the comment",
      "source_section": "Which part of the card: Title, Description, Welcome Message or Bot Prompt.",
{POSITIONING_FIELDS}
      "comment_type": "One of: 'Content Strength', 'Content Issue', 'LLM Issue'.",
      "comment_title": "A short title (5-10 words).",
      "comment_details": "What works or what is wrong, and why it matters to players.",
      "recommendation": "A concrete rewrite or change."
    }}
  ]
}}

Bot card:
""".strip()


def _quant_prompt(rubric: Dict[str, Any]) -> str:
    lines = []
    for section, items in rubric["sections"].items():
        for name, cfg in items.items():
            lines.append(f"- {section}.{name}: integer 0-{cfg['max']}")
    for name, cfg in rubric.get("adjustments", {}).items():
        lines.append(f"- adjustments.{name}: integer 0-{cfg['max']}")
    items_text = "\n".join(lines)
    return f"""
You are scoring a character bot card for an AI chat platform. You receive the card and an earlier qualitative
review of it. Score every item below. Each item is an object {{"score": <number>, "comment": "<one sentence>"}}.

Items:
{items_text}

{JSON_RULES}

Return:
{{
  "card_id": "the card id from the review",
  "quantitative_scores": {{
    "sections": {{"<section>": {{"<item>": {{"score": 0, "comment": "..."}}}}}},
    "adjustments": {{"<adjustment>": {{"score": 0, "comment": "..."}}}},
    "final_score": 0
  }}
}}
""".strip()


def build_prompt(
    variant: str,
    text: str,
    system_prompt: Optional[str] = None,
    analysis: Optional[Dict[str, Any]] = None,
    rubric: Optional[Dict[str, Any]] = None,
) -> str:
    if variant == "legal":
        header = system_prompt or LEGAL_PROMPT
    elif variant == "prd_en":
        header = PRD_PROMPT_EN
    elif variant == "prd_cn":
        header = PRD_PROMPT_CN
    elif variant == "bot_card":
        header = BOT_CARD_PROMPT
    elif variant == "bot_card_quant":
        if rubric is None:
            raise ValueError("bot_card_quant prompt needs a rubric")
        review = json.dumps(analysis or {}, ensure_ascii=False, indent=2)
        return _quant_prompt(rubric) + "\n\nEarlier review:\n" + review + "\n\nBot card:\n" + text
    else:
        raise ValueError(f"unknown prompt variant: {variant!r}")
    return header + "\n\n" + text
