"""
Host facts provider: physical memory, CPU architecture class and the
on-disk size of MyISAM indexes under the server's data directory.

Facts describe the machine this tool runs on. For a remote server the
'forcemem' and 'forcearch' settings stand in for the detected values.
"""

import logging
import os
import platform

import psutil

from plugins.common.check_helpers import MIB
from plugins.mysql.exceptions import AcquisitionFailure, UnavailableHostFact
from plugins.mysql.snapshot import UNAVAILABLE

logger = logging.getLogger(__name__)

MYISAM_INDEX_SUFFIX = '.MYI'


def _forced_int(settings, key):
    value = settings.get(key)
    if not value:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise AcquisitionFailure(f"{key} must be a whole number, got {value!r}") from e


def get_physical_memory(settings=None):
    """Installed RAM in bytes; 'forcemem' (MiB) wins over detection."""
    forcemem = _forced_int(settings or {}, 'forcemem')
    if forcemem:
        logger.info(f"Assuming {forcemem} MB of physical memory")
        return forcemem * MIB
    try:
        return psutil.virtual_memory().total
    except (OSError, RuntimeError) as e:
        raise AcquisitionFailure(f"Unable to determine physical memory: {e}") from e


def get_architecture(settings=None):
    """32 or 64; 'forcearch' wins over detection."""
    forcearch = _forced_int(settings or {}, 'forcearch')
    if forcearch:
        if forcearch not in (32, 64):
            raise AcquisitionFailure(f"forcearch must be 32 or 64, got {forcearch!r}")
        return forcearch
    machine = platform.machine() or ''
    arch_bit = platform.architecture()[0]
    return 64 if ('64' in machine or '64' in arch_bit) else 32


def get_myisam_index_bytes(datadir):
    """
    Sums the size of every .MYI file below datadir.

    Raises:
        UnavailableHostFact: datadir is unknown or could not be read, or a
            permission error left the scan with nothing counted.
    """
    if not datadir:
        raise UnavailableHostFact("Server did not report a data directory")
    if not os.path.isdir(datadir) or not os.access(datadir, os.R_OK | os.X_OK):
        raise UnavailableHostFact(f"Data directory {datadir} is not readable")

    denied = []

    def on_error(error):
        denied.append(error)

    total = 0
    for root, _dirs, files in os.walk(datadir, onerror=on_error):
        for name in files:
            if not name.endswith(MYISAM_INDEX_SUFFIX):
                continue
            path = os.path.join(root, name)
            try:
                total += os.stat(path).st_size
            except OSError as e:
                denied.append(e)

    if denied:
        logger.debug(f"{len(denied)} paths under {datadir} could not be read")
        if total == 0:
            raise UnavailableHostFact(f"Could not read MyISAM index files under {datadir}")
    return total


def get_host_facts(datadir, settings=None):
    """
    Collects every host fact the snapshot needs.

    Args:
        datadir (str): the server's datadir variable.
        settings (dict, optional): may carry 'forcemem' and 'forcearch'.

    Returns:
        dict: physical_memory_bytes, architecture, myisam_index_bytes_total.
    """
    facts = {
        'physical_memory_bytes': get_physical_memory(settings),
        'architecture': get_architecture(settings),
    }
    try:
        facts['myisam_index_bytes_total'] = get_myisam_index_bytes(datadir)
    except UnavailableHostFact as e:
        logger.warning(f"MyISAM index size unavailable: {e}")
        facts['myisam_index_bytes_total'] = UNAVAILABLE
    return facts
