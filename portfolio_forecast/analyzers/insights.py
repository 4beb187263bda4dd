"""
Advisory insights and risk grading derived from a StatisticalSummary.
Nothing here feeds back into the statistics.
"""

from dataclasses import dataclass, field

from portfolio_forecast.metrics.outcome_stats import StatisticalSummary
from portfolio_forecast.simulation.config import FinancialInputs

CONTRIBUTION_RATIO_THRESHOLD = 0.5
VOLATILITY_RANGE_THRESHOLD = 0.5


@dataclass(frozen=True)
class Insight:
    type: str
    title: str
    description: str
    confidence: str
    metric: str


@dataclass(frozen=True)
class RiskAssessment:
    overall_risk: str
    outcome_risk: str       # graded on success rate
    volatility_risk: str    # graded on coefficient of variation of final values
    recommendations: list[str] = field(default_factory=list)


class InsightDeriver:
    """Threshold rules turning aggregate statistics into 0-4 insights."""

    @staticmethod
    def derive(
        summary: StatisticalSummary,
        inputs: FinancialInputs,
        time_horizon_years: int,
    ) -> list[Insight]:
        insights: list[Insight] = []
        initial = inputs.initial_balance
        mean_final = summary.final_value.mean
        mean_gain = mean_final - initial

        # Growth
        if initial > 0:
            growth = mean_gain / initial
            insights.append(Insight(
                type="growth",
                title="Expected Portfolio Growth",
                description=(
                    f"On average, your portfolio is expected to grow by "
                    f"{growth * 100:.1f}% over the simulation period."
                ),
                confidence="high",
                metric=f"{growth * 100:.1f}% average growth",
            ))

        # Success probability
        rate = summary.success_rate
        insights.append(Insight(
            type="probability",
            title="Success Probability",
            description=f"{rate * 100:.1f}% of simulations resulted in positive returns.",
            confidence="high",
            metric=f"{rate * 100:.1f}% success rate",
        ))

        # Contribution impact
        total_contributions = inputs.annual_contribution * time_horizon_years
        if mean_gain > 0:
            ratio = total_contributions / mean_gain
            if ratio > CONTRIBUTION_RATIO_THRESHOLD:
                insights.append(Insight(
                    type="contribution",
                    title="Contribution-Driven Growth",
                    description=(
                        "Your portfolio growth is primarily driven by contributions "
                        "rather than investment returns."
                    ),
                    confidence="medium",
                    metric=f"{ratio * 100:.1f}% from contributions",
                ))

        # Outcome spread
        if mean_final > 0:
            spread = (summary.final_value.max - summary.final_value.min) / mean_final
            if spread > VOLATILITY_RANGE_THRESHOLD:
                insights.append(Insight(
                    type="risk",
                    title="High Portfolio Volatility",
                    description=(
                        "Your portfolio shows significant volatility, with a wide "
                        "range of possible outcomes."
                    ),
                    confidence="medium",
                    metric=f"{spread * 100:.1f}% volatility range",
                ))

        return insights

    @staticmethod
    def assess_risk(summary: StatisticalSummary) -> RiskAssessment:
        rate = summary.success_rate
        if rate < 0.5:
            outcome_risk = "High"
        elif rate < 0.7:
            outcome_risk = "Medium"
        else:
            outcome_risk = "Low"

        mean_final = summary.final_value.mean
        cv = summary.final_value.std / mean_final if mean_final > 0 else 0.0
        if cv > 0.5:
            volatility_risk = "High"
        elif cv > 0.25:
            volatility_risk = "Medium"
        else:
            volatility_risk = "Low"

        levels = ["Low", "Medium", "High"]
        overall = levels[max(levels.index(outcome_risk), levels.index(volatility_risk))]

        return RiskAssessment(
            overall_risk=overall,
            outcome_risk=outcome_risk,
            volatility_risk=volatility_risk,
            recommendations=_recommendations(overall, volatility_risk),
        )


def _recommendations(overall: str, volatility_risk: str) -> list[str]:
    if overall == "High":
        recs = [
            "Significantly increase monthly contributions",
            "Consider extending the investment horizon",
            "Review target outcomes against the worst-case projections",
        ]
    elif overall == "Medium":
        recs = [
            "Moderately increase monthly contributions",
            "Consider a more conservative allocation",
            "Review the plan regularly",
        ]
    else:
        recs = [
            "Maintain current contribution levels",
            "Review the allocation as the horizon shortens",
        ]

    if volatility_risk != "Low":
        recs.append("Diversify to reduce the spread of outcomes")
        recs.append("Consider a larger bond allocation")
    return recs
