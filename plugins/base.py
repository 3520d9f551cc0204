from abc import ABC, abstractmethod


class BasePlugin(ABC):
    """Abstract base class for all database technology plugins."""

    @property
    @abstractmethod
    def technology_name(self):
        """A lowercase, URL-friendly name for the technology (e.g., 'mysql')."""
        pass

    @abstractmethod
    def get_connector(self, settings):
        """Returns an instance of the technology-specific connector."""
        pass

    @abstractmethod
    def get_rules_config(self):
        """Returns the technology-specific threshold table."""
        pass

    @abstractmethod
    def get_report_definition(self):
        """Returns the structure of the report, defining its sections and their order."""
        pass

    @abstractmethod
    def collect_snapshot(self, connector, settings):
        """Captures the server state once, through a connected connector."""
        pass

    def get_db_version_from_findings(self, findings: dict) -> str:
        """
        Extracts the database version from a structured findings dictionary.
        Each plugin must implement this to parse its own findings structure.
        """
        return "N/A"
