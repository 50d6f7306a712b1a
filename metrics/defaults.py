"""
metrics/defaults.py

Built-in metric registry document.

Amounts are summed in yuan; ratios are stored as fractions and rendered
as percentages by the formatting rules.
"""

from __future__ import annotations

from typing import Any, Final

DEFAULT_METRICS_CONFIG: Final[dict[str, Any]] = {
    "base_measures": {
        "signed_premium": {"source_column": "signed_premium_yuan", "label": "签单保费"},
        "matured_premium": {"source_column": "matured_premium_yuan", "label": "满期保费"},
        "policy_count": {"source_column": "policy_count", "label": "保单件数"},
        "claim_case_count": {"source_column": "claim_case_count", "label": "赔案件数"},
        "reported_claim": {"source_column": "reported_claim_payment_yuan", "label": "已报告赔款"},
        "expense_amount": {"source_column": "expense_amount_yuan", "label": "费用金额"},
        "commercial_premium_before_discount": {
            "source_column": "commercial_premium_before_discount_yuan",
            "label": "商业险折前保费",
        },
        "premium_plan": {"source_column": "premium_plan_yuan", "label": "保费计划"},
        "marginal_contribution_amount": {
            "source_column": "marginal_contribution_amount_yuan",
            "label": "满期边际贡献额",
        },
    },
    "ratio_metrics": {
        "matured_loss_ratio": {
            "formula": "reported_claim / matured_premium",
            "dependencies": ["reported_claim", "matured_premium"],
            "format": "percentage_2",
            "label": "满期赔付率",
        },
        "expense_ratio": {
            "formula": "expense_amount / signed_premium",
            "dependencies": ["expense_amount", "signed_premium"],
            "format": "percentage_2",
            "label": "费用率",
        },
        "matured_marginal_contribution_rate": {
            "formula": "marginal_contribution_amount / matured_premium",
            "dependencies": ["marginal_contribution_amount", "matured_premium"],
            "format": "percentage_2",
            "label": "满期边际贡献率",
        },
        "matured_incident_rate": {
            "formula": "(claim_case_count / policy_count) * (matured_premium / signed_premium)",
            "dependencies": [
                "claim_case_count",
                "policy_count",
                "matured_premium",
                "signed_premium",
            ],
            "format": "percentage_2",
            "label": "满期出险率",
        },
        "premium_plan_achievement_rate": {
            "formula": "signed_premium / premium_plan",
            "dependencies": ["signed_premium", "premium_plan"],
            "format": "percentage_2",
            "label": "保费计划达成率",
        },
    },
    "derived_measures": {
        "average_premium": {
            "formula": "signed_premium / policy_count",
            "dependencies": ["signed_premium", "policy_count"],
            "format": "integer_with_comma",
            "label": "单均保费",
        },
        "average_claim": {
            "formula": "reported_claim / claim_case_count",
            "dependencies": ["reported_claim", "claim_case_count"],
            "format": "integer_with_comma",
            "label": "案均赔款",
        },
        "commercial_autonomy_coefficient": {
            "formula": "signed_premium / commercial_premium_before_discount",
            "dependencies": ["signed_premium", "commercial_premium_before_discount"],
            "format": "decimal_3",
            "label": "商业险自主系数",
        },
    },
    "composite_metrics": {
        "variable_cost_ratio": {
            "formula": "expense_ratio + matured_loss_ratio",
            "dependencies": ["expense_ratio", "matured_loss_ratio"],
            "format": "percentage_2",
            "label": "变动成本率",
        },
    },
    "formatting_rules": {
        "null_placeholder": "-",
        "percentage_2": {"multiplier": 100, "format_string": "{:.2f}%"},
        "integer_with_comma": {"format_string": "{:,.0f}"},
        "decimal_3": {"format_string": "{:.3f}"},
    },
}
