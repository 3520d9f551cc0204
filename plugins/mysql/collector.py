"""
Builds the one-per-run Snapshot from the connector and the host.
"""

import logging

from plugins.mysql.engines import aggregate_engine_usage
from plugins.mysql.host_facts import get_host_facts
from plugins.mysql.snapshot import Snapshot
from plugins.mysql.utils.mysql_version_compatibility import parse_version, resolve_capabilities

logger = logging.getLogger(__name__)


def collect_snapshot(connector, settings):
    """
    Gathers variables, status counters, engine usage and host facts.

    Args:
        connector (MySQLConnector): an already connected connector.
        settings (dict): application settings ('datadir', 'forcemem',
            'forcearch' are honoured).

    Returns:
        Snapshot

    Raises:
        AcquisitionFailure: the server or the host could not be queried.
    """
    variables = connector.get_variables()
    status = connector.get_status()

    version_string = variables.get('version') or connector.version_info.get('version_string', '')
    capabilities = resolve_capabilities(parse_version(version_string))

    engine_usage = aggregate_engine_usage(connector.get_table_engine_sizes(capabilities))
    logger.info(f"Found tables in {len(engine_usage)} storage engines")

    datadir = settings.get('datadir') or variables.get('datadir')
    host = get_host_facts(datadir, settings)

    return Snapshot(variables, status, host,
                    engine_usage=engine_usage,
                    version_string=version_string,
                    login_without_password=connector.login_without_password)
