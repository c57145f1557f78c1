"""
Campaign analytics report builder.

Fetches a campaign's records through the repository, runs every analysis
component and assembles one CampaignAnalytics snapshot. A failing component
fails the whole report; recovered per-voter and per-edge problems are kept
in the snapshot's warnings.
"""

import hashlib
import logging
import math
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from .config import AnalysisConfig
from .district import aggregate_districts, registered_voter_total
from .errors import AggregationError
from .graph import build_influence_graph
from .influence import rank_influencers
from .models import (
    AnalyticsReport,
    CampaignAnalytics,
    District,
    ReportInsight,
    ReportPeriod,
    ReportType,
    Voter,
)
from .probability import estimate_win_probability
from .stats import (
    compute_contact_stats,
    compute_stance_distribution,
    compute_trend,
    compute_voter_stats,
    default_period,
)

logger = logging.getLogger(__name__)

REPORT_PERIOD_DAYS = {
    ReportType.DAILY: 1,
    ReportType.WEEKLY: 7,
    ReportType.MONTHLY: 30,
}


def period_for(report_type: ReportType, end: datetime) -> ReportPeriod:
    """Reporting window for a report type ending at `end`."""
    if report_type not in REPORT_PERIOD_DAYS:
        raise ValueError(f"{report_type.value} reports need an explicit period")
    return default_period(end, REPORT_PERIOD_DAYS[report_type])


def derive_votes_needed(
    voters: Sequence[Voter], districts: Sequence[District], config: AnalysisConfig
) -> float:
    """
    Winning threshold when none is configured: a simple majority of the
    expected turnout over the registered electorate (or the known voters).

    Without registered counts every known voter joins the electorate,
    including voters outside any fetched district; those voters raise the
    threshold but add nothing to the district estimated votes.
    """
    if config.votes_needed is not None:
        return float(config.votes_needed)

    electorate = registered_voter_total(districts) or len(voters)
    return float(math.floor(electorate * config.turnout_assumption / 2) + 1)


class ReportBuilder:
    """
    Builds analytics snapshots for a campaign.

    The repository must provide get_voters, get_relationships, get_contacts
    and get_districts, each keyed by campaign id.
    """

    def __init__(
        self,
        repository,
        config: Optional[AnalysisConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repository = repository
        self.config = config or AnalysisConfig()
        self.clock = clock or datetime.now

    def _run(self, component: str, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Report component '{component}' failed: {e}")
            raise AggregationError(component, str(e)) from e

    def build_report(
        self, campaign_id: str, period: Optional[ReportPeriod] = None
    ) -> CampaignAnalytics:
        """
        Build the analytics snapshot for a campaign.

        Args:
            campaign_id: Campaign to analyze
            period: Trend window; defaults to the last config.trend_days days

        Raises:
            AggregationError: naming the component that failed
        """
        timestamp = self.clock()
        period = period or default_period(timestamp, self.config.trend_days)
        config = self.config
        warnings: List[str] = []

        logger.info(f"Building analytics report for campaign {campaign_id}")

        voters = self._run("voters", self.repository.get_voters, campaign_id)
        relationships = self._run(
            "relationships", self.repository.get_relationships, campaign_id
        )
        contacts = self._run("contacts", self.repository.get_contacts, campaign_id)
        districts = self._run("districts", self.repository.get_districts, campaign_id)

        voter_stats = self._run(
            "voter_stats", compute_voter_stats, voters, districts, config, warnings
        )
        contact_stats = self._run(
            "contact_stats", compute_contact_stats, voters, contacts, period.end
        )
        stance_distribution = self._run(
            "stance_distribution",
            compute_stance_distribution,
            voters,
            warnings,
            config.stance_fallback,
        )

        graph_result = self._run(
            "influence_graph",
            build_influence_graph,
            voters,
            relationships,
            config.symmetric_relationships,
        )
        warnings.extend(w.message for w in graph_result.warnings)
        top_influencers = self._run(
            "influence",
            rank_influencers,
            graph_result.graph,
            config,
            config.top_influencers,
        )

        breakdowns = self._run(
            "district_breakdown",
            aggregate_districts,
            voters,
            contacts,
            districts,
            config,
        )
        trend = self._run("trend", compute_trend, voters, contacts, period)

        votes_needed = self._run(
            "votes_needed", derive_votes_needed, voters, districts, config
        )
        win_probability = self._run(
            "win_probability",
            estimate_win_probability,
            breakdowns,
            votes_needed,
            config,
            stance_distribution,
            contact_stats,
        )

        logger.info(
            f"Report for campaign {campaign_id}: {voter_stats.total_voters} voters, "
            f"{len(breakdowns)} districts, {len(warnings)} warnings"
        )

        return CampaignAnalytics(
            campaign_id=campaign_id,
            timestamp=timestamp,
            voter_stats=voter_stats,
            contact_stats=contact_stats,
            stance_distribution=stance_distribution,
            district_breakdown=breakdowns,
            trend_data=trend,
            win_probability=win_probability,
            top_influencers=top_influencers,
            warnings=warnings,
        )

    def build_analytics_report(
        self,
        campaign_id: str,
        report_type: ReportType = ReportType.WEEKLY,
        period: Optional[ReportPeriod] = None,
    ) -> AnalyticsReport:
        """Wrap a snapshot with report metadata and derived insights."""
        if period is None:
            period = period_for(report_type, self.clock())

        data = self.build_report(campaign_id, period)
        key = f"{campaign_id}:{report_type.value}:{period.start.isoformat()}:{period.end.isoformat()}"
        report_id = hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]  # nosec B324

        return AnalyticsReport(
            id=report_id,
            campaign_id=campaign_id,
            type=report_type,
            title=(
                f"{report_type.value.title()} campaign report "
                f"{period.start.date().isoformat()} to {period.end.date().isoformat()}"
            ),
            generated_at=data.timestamp,
            period=period,
            data=data,
            insights=generate_insights(data),
        )


def generate_insights(data: CampaignAnalytics) -> List[ReportInsight]:
    """Plain-language highlights derived from a snapshot."""
    insights = []
    distribution = data.stance_distribution
    total = distribution.total

    if total:
        support_rate = distribution.support_count / total
        undecided_share = distribution.undecided_count / total

        if support_rate >= 0.5:
            insights.append(
                ReportInsight(
                    type="positive",
                    title="Majority support",
                    description=f"{support_rate:.0%} of scored voters lean towards the campaign",
                    metric="support_rate",
                    change=round(support_rate, 4),
                )
            )
        if undecided_share >= 0.3:
            insights.append(
                ReportInsight(
                    type="warning",
                    title="Large undecided group",
                    description=f"{undecided_share:.0%} of voters are neutral or undecided",
                    metric="undecided_share",
                    change=round(undecided_share, 4),
                )
            )

    contact_stats = data.contact_stats
    if data.voter_stats.total_voters and contact_stats.contact_rate < 0.5:
        insights.append(
            ReportInsight(
                type="action",
                title="Increase outreach",
                description=f"Only {contact_stats.contact_rate:.0%} of voters have been contacted",
                metric="contact_rate",
                change=contact_stats.contact_rate,
            )
        )

    trend = contact_stats.recent_contact_trend
    if trend > 0:
        insights.append(
            ReportInsight(
                type="positive",
                title="Contact activity rising",
                description=f"Contacts are up {trend:.0%} on the previous week",
                metric="recent_contact_trend",
                change=trend,
            )
        )
    elif trend < 0:
        insights.append(
            ReportInsight(
                type="warning",
                title="Contact activity falling",
                description=f"Contacts are down {abs(trend):.0%} on the previous week",
                metric="recent_contact_trend",
                change=trend,
            )
        )

    for breakdown in data.district_breakdown:
        if breakdown.total_voters and breakdown.confidence < 1.0:
            insights.append(
                ReportInsight(
                    type="action",
                    title=f"Thin data in {breakdown.district_name}",
                    description=(
                        f"Only {breakdown.total_voters} voters recorded; "
                        f"estimates have {breakdown.confidence:.0%} confidence"
                    ),
                    metric="confidence",
                    change=breakdown.confidence,
                )
            )

    return insights
