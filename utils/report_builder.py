"""
Defines the ReportBuilder class, which renders classified findings and
recommendations into the plain-text tuning report.
"""

import logging

from plugins.common.check_helpers import hr_bytes, hr_bytes_rnd, hr_num, pretty_uptime
from plugins.mysql.engines import ENGINE_STATUS_FLAGS, is_engine_enabled
from plugins.mysql.findings import Finding, Section, Severity
from plugins.mysql.rules.analysis_rules import METRIC_ANALYSIS_CONFIG

logger = logging.getLogger(__name__)

C_RED = "\033[0;31m"
C_GREEN = "\033[0;32m"
C_BLUE = "\033[0;34m"
C_RESET = "\033[0m"

HEADER_WIDTH = 78

MEMORY_BANNER = (
    "  *** MySQL's maximum memory usage exceeds your installed memory ***",
    "  *** Add more RAM before increasing any MySQL buffer variables  ***",
)


class ReportBuilder:
    """Handles the construction of the tuning report.

    This class walks a report definition (a list of sections, each with a
    list of actions) and renders, per section, the descriptive INFO facts,
    the classifier's findings for that section, or the recommendation lists.

    Attributes:
        snapshot (Snapshot): the captured server state.
        derived (Mapping): derived metrics.
        findings (tuple[Finding, ...]): classifier output, in rule order.
        recommendations (RecommendationSet): classifier output.
        report_sections (list): the report definition structure.
        settings (dict): display settings; honours 'nogood', 'nobad',
            'noinfo' and 'nocolor'.
        rules (dict): threshold table; the memory banner uses its
            'memory_ceiling' entry.
    """

    def __init__(self, snapshot, derived, findings, recommendations, report_sections, settings=None,
                 rules_config=None):
        self.snapshot = snapshot
        self.rules = rules_config or METRIC_ANALYSIS_CONFIG
        self.derived = derived
        self.findings = tuple(findings)
        self.recommendations = recommendations
        self.report_sections = report_sections
        self.settings = settings or {}
        self.color = not self.settings.get('nocolor', False)
        self.hidden = set()
        if self.settings.get('nogood'):
            self.hidden.add(Severity.OK)
        if self.settings.get('nobad'):
            self.hidden.add(Severity.WARN)
        if self.settings.get('noinfo'):
            self.hidden.add(Severity.INFO)

    def build(self):
        """Builds the full report by iterating through sections and actions.

        Returns:
            str: the rendered report, newline terminated.
        """
        lines = []
        for section in self.report_sections:
            if section.get('title'):
                lines.append("")
                lines.append(self._section_header(section['title']))
            for action in section['actions']:
                action_type = action.get('type')
                if action_type == 'facts':
                    lines.extend(self._render(self.describe(action['section'])))
                elif action_type == 'findings':
                    lines.extend(self._render(f for f in self.findings if f.section == action['section']))
                elif action_type == 'recommendations':
                    lines.extend(self._render_recommendations())
                else:
                    logger.warning(f"Unknown report action type: {action_type}")
        return "\n".join(lines) + "\n"

    def structured_findings(self):
        """Returns the report content as plain data for JSON export."""
        return {
            'server': self.snapshot.to_dict(),
            'derived_metrics': dict(self.derived),
            'findings': [
                {
                    'metric': f.metric,
                    'severity': f.severity.value,
                    'message': f.message,
                    'section': f.section.value,
                }
                for f in self.findings
            ],
            'recommendations': self.recommendations.to_dict(),
        }

    def describe(self, section):
        """Descriptive, non-judged INFO facts for a section."""
        if section == Section.STORAGE_ENGINES:
            return self._describe_storage_engines()
        if section == Section.PERFORMANCE:
            return self._describe_performance()
        return []

    def _describe_storage_engines(self):
        status = []
        for flag, engine in ENGINE_STATUS_FLAGS:
            if is_engine_enabled(self.snapshot, flag):
                status.append(self._wrap(f"+{engine}", C_GREEN))
            else:
                status.append(self._wrap(f"-{engine}", C_RED))
        facts = [_info('engine_status', "Status: " + " ".join(status), Section.STORAGE_ENGINES)]
        for engine, usage in self.snapshot.engine_usage.items():
            facts.append(_info(
                'engine_usage',
                f"Data in {engine} tables: {hr_bytes_rnd(usage['total_data_bytes'])} "
                f"(Tables: {usage['table_count']})",
                Section.STORAGE_ENGINES))
        return facts

    def _describe_performance(self):
        status = self.snapshot.status_int
        derived = self.derived
        facts = []

        qps = derived.get('queries_per_second', 0)
        facts.append(_info(
            'uptime',
            f"Up for: {pretty_uptime(status('Uptime'))} ({hr_num(status('Questions'))} q "
            f"[{hr_num(qps)} qps], {hr_num(status('Connections'))} conn, "
            f"TX: {hr_num(status('Bytes_sent') or 0)}, RX: {hr_num(status('Bytes_received') or 0)})",
            Section.PERFORMANCE))

        if 'pct_reads' in derived:
            facts.append(_info('pct_reads',
                               f"Reads / Writes: {derived['pct_reads']}% / {derived['pct_writes']}%",
                               Section.PERFORMANCE))

        if 'server_wide_buffer_bytes' in derived:
            facts.append(_info(
                'per_thread_buffer_bytes',
                f"Total buffers: {hr_bytes(derived['per_thread_buffer_bytes'])} per thread and "
                f"{hr_bytes(derived['server_wide_buffer_bytes'])} global",
                Section.PERFORMANCE))
        return facts

    def _render_recommendations(self):
        general = self.recommendations.general_recommendations
        adjustments = self.recommendations.variable_adjustments
        lines = []
        if general:
            lines.append("General recommendations:")
            lines.extend(f"    {rec}" for rec in general)
        if adjustments:
            lines.append("Variables to adjust:")
            pct_physical_memory = self.derived.get('pct_physical_memory')
            ceiling = self.rules['memory_ceiling']['warn_above']
            if pct_physical_memory is not None and pct_physical_memory > ceiling:
                lines.extend(MEMORY_BANNER)
            lines.extend(f"    {adj}" for adj in adjustments)
        if not general and not adjustments:
            lines.append("No additional performance recommendations are available.")
        return lines

    def _render(self, findings):
        return [f"{self._marker(f.severity)} {f.message}" for f in findings if f.severity not in self.hidden]

    def _marker(self, severity):
        if severity == Severity.OK:
            return self._wrap("[OK]", C_GREEN, inner="OK")
        if severity == Severity.WARN:
            return self._wrap("[!!]", C_RED, inner="!!")
        return self._wrap("[--]", C_BLUE, inner="--")

    def _wrap(self, text, color, inner=None):
        if not self.color:
            return text
        if inner is not None:
            return f"[{color}{inner}{C_RESET}]"
        return f"{color}{text}{C_RESET}"

    @staticmethod
    def _section_header(title):
        prefix = f"-------- {title} "
        return prefix + "-" * max(0, HEADER_WIDTH - len(prefix))


def _info(metric, message, section):
    return Finding(metric, Severity.INFO, message, section)
