from plugins.base import BasePlugin
from .collector import collect_snapshot
from .connector import MySQLConnector
from .reports.default import get_report_definition as get_mysql_report_definition
from .rules.analysis_rules import METRIC_ANALYSIS_CONFIG as MYSQL_ANALYSIS_RULES


class MySQLPlugin(BasePlugin):
    @property
    def technology_name(self):
        return "mysql"

    def get_connector(self, settings):
        return MySQLConnector(settings)

    def get_report_definition(self):
        return get_mysql_report_definition()

    def get_rules_config(self):
        return MYSQL_ANALYSIS_RULES

    def collect_snapshot(self, connector, settings):
        return collect_snapshot(connector, settings)

    def get_db_version_from_findings(self, findings: dict) -> str:
        return findings.get('server', {}).get('version', 'N/A')
