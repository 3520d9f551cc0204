#!/usr/bin/env python3
"""
Main entrypoint for the MySQL Tuning Health Check.

This script initializes the application, discovers plugins, parses command-line
arguments, and orchestrates one run: connect, capture a snapshot, derive
metrics, classify them and print the tuning report.
"""

import yaml
import sys
import importlib
from pathlib import Path
import json
import logging
import argparse
import pkgutil
import socket
import getpass
from utils.json_utils import UniversalJSONEncoder
from utils.report_builder import ReportBuilder
from plugins.base import BasePlugin
from plugins.mysql.calculations import derive
from plugins.mysql.classifier import classify
from plugins.mysql.exceptions import HealthCheckError

logger = logging.getLogger(__name__)

try:
    APP_VERSION = (Path(__file__).parent / "VERSION").read_text().strip()
except FileNotFoundError:
    APP_VERSION = "unknown"

DEFAULT_SETTINGS = {
    'db_type': 'mysql',
    'host': 'localhost',
    'port': 3306,
    'user': '',
    'password': '',
    'unix_socket': None,
    'connection_timeout': 10,
    'connect_attempts': 1,
    'datadir': None,
    'forcemem': None,
    'forcearch': None,
    'nogood': False,
    'nobad': False,
    'noinfo': False,
    'nocolor': False,
}

DISPLAY_FLAGS = ('nogood', 'nobad', 'noinfo', 'nocolor')


def discover_plugins():
    """Finds and loads all available plugins from the 'plugins' directory.

    This function iterates through the subdirectories of the 'plugins' folder,
    imports them as modules, and looks for classes that inherit from BasePlugin.
    It instantiates each found plugin and returns a dictionary mapping the
    plugin's technology name to its instance.

    Returns:
        dict: A dictionary of loaded plugin instances, keyed by technology name.
    """
    plugins_path = Path(__file__).parent / "plugins"
    discovered_plugins = {}
    for _, name, is_pkg in pkgutil.iter_modules([str(plugins_path)]):
        if name in ("base", "common") or not is_pkg:
            continue
        try:
            module = importlib.import_module(f'plugins.{name}')
        except ImportError as e:
            logger.warning(f"Could not import plugin '{name}'. Missing dependency: {e}. Skipping.")
            continue
        for item_name in dir(module):
            item = getattr(module, item_name)
            if isinstance(item, type) and issubclass(item, BasePlugin) and item is not BasePlugin:
                plugin_instance = item()
                discovered_plugins[plugin_instance.technology_name] = plugin_instance
                logger.debug(f"Discovered and loaded plugin: {plugin_instance.technology_name}")
    return discovered_plugins


def load_settings(config_file):
    """Loads the main YAML configuration file and applies defaults.

    A missing file is not an error: the defaults describe a local server
    reached as the current user without a password.
    """
    settings = {}
    if config_file:
        try:
            with open(config_file, 'r') as f:
                settings = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.info(f"No settings file at {config_file}; using defaults")
        except yaml.YAMLError as e:
            print(f"Error loading settings from {config_file}: {e}", file=sys.stderr)
            sys.exit(1)
    if not isinstance(settings, dict):
        print(f"Error loading settings from {config_file}: expected a mapping", file=sys.stderr)
        sys.exit(1)
    for key, value in DEFAULT_SETTINGS.items():
        settings.setdefault(key, value)
    return settings


class HealthCheck:
    """Orchestrates the entire health check process from start to finish."""
    def __init__(self, settings):
        """Initializes the HealthCheck application.

        Args:
            settings (dict): loaded settings, CLI overrides already applied.
        """
        self.settings = settings
        self.app_version = APP_VERSION
        self.available_plugins = discover_plugins()
        active_tech = self.settings.get('db_type')
        self.active_plugin = self.available_plugins.get(active_tech)

        if not self.active_plugin:
            raise ValueError(f"Unsupported or missing db_type: '{active_tech}'. Available plugins: {list(self.available_plugins.keys())}")

        self.report_sections = self.active_plugin.get_report_definition()
        self.connector = self.active_plugin.get_connector(self.settings)
        self.report_text = ""
        self.all_structured_findings = {}

    def run_report(self):
        """Connects, captures the snapshot and builds the report.

        Raises:
            HealthCheckError: acquisition failed, or the server is missing a
                prerequisite counter (e.g. it has answered no queries).
        """
        self.connector.connect()
        try:
            snapshot = self.active_plugin.collect_snapshot(self.connector, self.settings)
        finally:
            self.connector.disconnect()

        derived = derive(snapshot)
        rules_config = self.active_plugin.get_rules_config()
        findings, recommendations = classify(snapshot, derived, rules_config=rules_config)

        builder = ReportBuilder(snapshot, derived, findings, recommendations,
                                self.report_sections, self.settings, rules_config=rules_config)
        self.report_text = builder.build()
        self.all_structured_findings = builder.structured_findings()
        self.generate_and_embed_metadata()
        logger.info(f"Report built for server version "
                    f"{self.active_plugin.get_db_version_from_findings(self.all_structured_findings)}")
        return self.report_text

    def generate_and_embed_metadata(self):
        """Embeds run metadata into the structured findings object."""
        self.all_structured_findings['db_metadata'] = self.connector.get_db_metadata()
        self.all_structured_findings['execution_context'] = {
            'tool_version': self.app_version,
            'run_by_user': getpass.getuser(),
            'run_from_host': socket.gethostname(),
        }

    def save_structured_findings(self, output_path):
        """Saves the final structured findings object to a JSON file."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            json.dump(self.all_structured_findings, f, indent=2, cls=UniversalJSONEncoder)
        logger.info(f"Structured health check findings saved to: {output_path}")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='MySQL Tuning Health Check')
    parser.add_argument('--config', default='config/config.yaml', help='Path to configuration file')
    parser.add_argument('--nogood', action='store_true', help='Remove OK responses')
    parser.add_argument('--nobad', action='store_true', help='Remove negative/suggestion responses')
    parser.add_argument('--noinfo', action='store_true', help='Remove informational responses')
    parser.add_argument('--nocolor', action='store_true', help="Don't print output in color")
    parser.add_argument('--json-output', help='Also write structured findings to this JSON file')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging verbosity')
    return parser.parse_args(argv)


def main(argv=None):
    """Parses command line arguments and runs the health check."""
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format='%(asctime)s - %(levelname)s - %(message)s')

    settings = load_settings(args.config)
    for flag in DISPLAY_FLAGS:
        if getattr(args, flag):
            settings[flag] = True

    print(f" >>  MySQL Tuning Health Check v{APP_VERSION}")
    try:
        health_check = HealthCheck(settings)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        report = health_check.run_report()
    except HealthCheckError as e:
        logger.debug("Health check aborted", exc_info=True)
        print(f"[!!] {e}", file=sys.stderr)
        return 1

    sys.stdout.write(report)
    if args.json_output:
        health_check.save_structured_findings(args.json_output)
    return 0


if __name__ == '__main__':
    sys.path.insert(0, str(Path(__file__).parent))
    sys.exit(main())
