"""Prompt templates for the trade analyst and the strategy meta-analysis."""

from __future__ import annotations

import json
from typing import Any

# Marker the analyst must emit; checked case-insensitively.
BUY_MARKER = "报告结果：建议购买"
PASS_MARKER = "报告结果：建议放弃"

ANALYST_SYSTEM = "你是一个专业的加密货币交易分析师，擅长分析市场趋势和代币表现。"

ANALYSIS_TEMPLATE = """\
你是一个顶级加密金融交易专家，帮我深度分析：
1、我可以接受中级风险投资。
2、报告里增加情绪分析、趋势预测和风险评估（1-10分，10分最高风险）。
3、搜索 X 或网络上的最新动态和社区情绪，给我更全面的信息。
4、综合交易信息与最新动态和社区情绪信息，判断是否买入，给出具体买入理由。
5、如果建议买入，假设我投入 {buy_amount} SOL，必须明确给出完整的交易计划，包括买入价格、止损价格、止盈价格和分批卖出计划，交易机器人会按照你给的交易方案执行。
6、请按照以下格式提供分析报告：
### 深度分析报告
报告结果：[明确写出"建议购买"或"建议放弃"，并简要总结理由]

#### 1. 最新动态与社区情绪
- 网络上的最新动态：[分析代币的最新市场动态]
- 社区情绪：[分析社区对该代币的情绪和反应]

#### 2. 综合判断是否买入
- 买入理由：[如果建议买入，列出具体理由]
- 不买理由：[如果不建议买入，列出具体理由]

#### 3. 交易方案
- 投入金额：{buy_amount} SOL
- 买入数量：[根据当前价格计算的买入数量]
- 卖出策略：
  1. 止盈点：[设定具体的止盈价格和百分比，以及卖出比例]
  2. 止损点：[设定具体的止损价格和百分比]
  3. 分批卖出计划：[详细的分批卖出策略]

#### 4. 风险控制
- 风险评估：[1-10分，10分为最高风险]
- 风险因素：[列出主要风险因素]
- 应对策略：[如何应对可能的风险]

### 深度分析报告结束

原始信息如下：
"""

EVOLUTION_SYSTEM = "你是一个专业的加密货币数据分析师，擅长从历史数据中总结经验并提供具体的改进建议。"

EVOLUTION_TEMPLATE = """\
请分析以下历史交易数据，找出决策模式和改进方向：
{features}

请提供以下分析：
1. 失败交易的3个主要原因
2. 成功交易的3个关键特征
3. 改进交易策略的3个建议
4. 是否存在可能错过的潜在机会（例如，拒绝了但市场表现良好的代币）
5. 如何调整决策阈值以提高成功率
"""


def build_analysis_prompt(message: str, buy_amount: str) -> str:
    """Analyst prompt with the raw alert appended verbatim."""
    return ANALYSIS_TEMPLATE.format(buy_amount=buy_amount) + message


def build_evolution_prompt(features: list[dict[str, Any]]) -> str:
    return EVOLUTION_TEMPLATE.format(features=json.dumps(features, ensure_ascii=False))
