"""Prompt construction for the keyword and weighted-analysis model calls."""

from __future__ import annotations

KEYWORD_INSTRUCTIONS = (
    "你是一名事实核查助理。请从下面的待核查文本中提炼出最适合用于网络搜索的关键词，"
    "保留人物、机构、地点、时间和数字等核心要素。\n"
    "只输出一行搜索关键词，词与词之间用空格分隔，不要解释，不要加引号，不超过 20 个字。"
)

ANALYSIS_INSTRUCTIONS = (
    "你是一名严谨的事实核查编辑。请根据下方带有信源等级与权重的证据链，判断待核查文本的真实性。\n"
    "规则：\n"
    "1. 权重越高的信源越可信，权威官媒（权重 1.0）优先于社交平台（权重 0.2）；\n"
    "2. 低权重信源只能作为线索，不能单独作为定论依据；\n"
    "3. 证据不足或相互矛盾时，如实说明，不要臆测；\n"
    "4. 不要编造证据链中不存在的信息或链接。"
)

ANSWER_LAYOUT = (
    "请严格按以下格式输出纯文本，不要使用 Markdown 符号：\n"
    "总结：<属实 / 基本属实 / 存疑 / 不实 / 待验证 之一，并用一句话概括>\n"
    "核心分析：<结合高权重信源的关键论据>\n"
    "支持点：<支持该说法的证据及其信源>\n"
    "矛盾点：<与该说法冲突的证据及其信源，没有则写“暂无明确冲突证据”>\n"
    "结论：<给读者的建议>"
)

NO_EVIDENCE_NOTE = "（未检索到可用证据，请仅依据常识谨慎判断，并将结论标注为待验证。）"


def build_keyword_prompt(claim: str) -> str:
    return f"{KEYWORD_INSTRUCTIONS}\n\n待核查文本：\n{claim}"


def build_final_analysis_prompt(claim: str, evidence_block: str) -> str:
    evidence = evidence_block.strip() or NO_EVIDENCE_NOTE
    return (
        f"{ANALYSIS_INSTRUCTIONS}\n\n"
        f"待核查文本：\n{claim}\n\n"
        f"证据链：\n{evidence}\n\n"
        f"{ANSWER_LAYOUT}"
    )


__all__ = ["build_final_analysis_prompt", "build_keyword_prompt"]
