"""Language-model calls: weekly report JSON and single-task rewrites."""
import json
import logging

from openai import APITimeoutError, OpenAI, OpenAIError

import settings
from weekly_tasks import WeekBoard, week_to_dict

logger = logging.getLogger(__name__)


class ReportGenerationError(Exception):
    """The model could not be reached or returned an API error."""


class ReportTimeoutError(ReportGenerationError):
    """The model did not answer within the configured timeout."""


GENERATE_SYSTEM = """你是一位专业的行政助手，负责把一周的工作日志整理成一份标准的“传统工作周报”。
只返回合法的 JSON 字符串，不要输出 Markdown，也不要任何解释。

JSON 结构:
{
  "weeklySummary": ["本周主要工作成果，3-5 条"],
  "nextWeekAttention": ["下周需要注意的事项，2-3 条"],
  "dailyLogs": [
    {"day": "星期一", "date": "MM.DD", "content": "当天任务合并成的一段通顺文字"}
  ],
  "problemsAndSolutions": [
    {"problem": "遇到的问题", "solution": "建议解决办法", "resolved": "是/否/推进中"}
  ],
  "nextWeekPlan": [
    {"day": "星期一", "content": "下周当天的大致安排"}
  ],
  "finalSummary": "一句话评价本周表现"
}

要求:
- dailyLogs 必须覆盖星期一到星期五，周六、周日可选；day 使用“星期一”这样的中文写法。
- date 按本周实际日期推算，例如 10.24。
- 从未完成或进行中的任务里找出问题；如果没有明显问题，给出 1-2 条常见的优化建议（如流程优化、文档沉淀）。
- nextWeekPlan 依据本周进度安排下周每天的内容。
- 语言简洁、专业，行政公文风格。"""

REFINE_PROMPT = """角色：你是一位专业的职场写作助理。
任务：把用户输入的简短工作记录改写成一句专业、简洁、结果导向的工作日志。
语言：简体中文。
限制：只输出一句话，不超过30字，不要使用引号。

输入: "{content}"
输出:"""


# Optional: set OPENAI_API_KEY in environment for AI generation
def openai_client(api_key=None, timeout=None):
    key = (api_key or "").strip() or settings.openai_api_key()
    if not key:
        return (
            None,
            "No API key. Set OPENAI_API_KEY in environment or provide api_key in request.",
        )
    try:
        return OpenAI(api_key=key, timeout=timeout or settings.ai_timeout_seconds()), None
    except Exception as e:
        return None, str(e)


def generate_report(board: WeekBoard, client, model=None, timeout=None) -> str:
    """Ask the model for the structured report; returns the raw JSON text.

    The text is not validated here; ReportDataStore.load_text parses it.
    """
    payload = json.dumps(week_to_dict(board), ensure_ascii=False, indent=2)
    try:
        response = client.chat.completions.create(
            model=model or settings.openai_model(),
            messages=[
                {"role": "system", "content": GENERATE_SYSTEM},
                {"role": "user", "content": "原始数据:\n" + payload},
            ],
            temperature=0.3,
            response_format={"type": "json_object"},
            timeout=timeout or settings.ai_timeout_seconds(),
        )
    except APITimeoutError as e:
        logger.error("Report generation timed out: %s", e)
        raise ReportTimeoutError("AI 服务响应超时，请稍后重试。") from e
    except OpenAIError as e:
        logger.error("Report generation failed: %s", e)
        raise ReportGenerationError("无法连接到 AI 服务生成周报。") from e
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError) as e:
        logger.error("Unexpected response from model: %r", response)
        raise ReportGenerationError("AI 服务返回了无法识别的结果。") from e
    return (content or "").strip() or "{}"


def refine_task_content(content: str, client, model=None, timeout=None) -> str:
    """Rewrite one task line; falls back to the original text on any failure."""
    if not (content or "").strip():
        return content
    try:
        response = client.chat.completions.create(
            model=model or settings.openai_model(),
            messages=[{"role": "user", "content": REFINE_PROMPT.format(content=content)}],
            temperature=0.3,
            timeout=timeout or settings.ai_timeout_seconds(),
        )
        refined = (response.choices[0].message.content or "").strip()
    except (OpenAIError, AttributeError, IndexError, TypeError):
        logger.exception("Task refine failed")
        return content
    return refined or content
