"""
Immutable snapshot of a MySQL server's configuration, counters and host.

The snapshot is built once per run from the connector and the host facts
provider. Raw values stay as the strings the server returned; the typed
accessors parse on read and return None for absent or unparseable keys, so
"absent" never collapses into "zero".
"""

import logging
from types import MappingProxyType

from plugins.mysql.utils.mysql_version_compatibility import parse_version, resolve_capabilities

logger = logging.getLogger(__name__)

# Host fact sentinel for an index total that could not be measured.
UNAVAILABLE = 'unavailable'

_TRUE_FLAGS = {'ON', 'YES', 'TRUE', '1'}
_FALSE_FLAGS = {'OFF', 'NO', 'FALSE', '0', 'DISABLED'}


class Snapshot:
    """Read-only view of variables, status counters, host facts and engine usage.

    Attributes:
        variables (Mapping[str, str]): SHOW GLOBAL VARIABLES.
        status (Mapping[str, str]): SHOW GLOBAL STATUS.
        host (Mapping[str, object]): physical_memory_bytes, architecture,
            myisam_index_bytes_total (int or UNAVAILABLE).
        engine_usage (Mapping[str, Mapping]): engine -> totals.
        server_version (tuple): (major, minor).
        version_string (str): raw version as reported by the server.
        capabilities (Mapping[str, object]): version capability table,
            resolved at construction.
    """

    __slots__ = ('_variables', '_status', '_host', '_engine_usage', '_server_version',
                 '_version_string', '_capabilities', '_login_without_password')

    def __init__(self, variables, status, host, engine_usage=None, version_string=None,
                 login_without_password=False):
        variables = dict(variables)
        self._variables = MappingProxyType(variables)
        self._status = MappingProxyType(dict(status))
        self._host = MappingProxyType(dict(host))
        self._engine_usage = MappingProxyType({
            engine: MappingProxyType(dict(usage))
            for engine, usage in (engine_usage or {}).items()
        })
        self._version_string = version_string or variables.get('version', '')
        self._server_version = parse_version(self._version_string)
        self._login_without_password = bool(login_without_password)
        self._capabilities = MappingProxyType(resolve_capabilities(self._server_version))

    def __setattr__(self, name, value):
        if hasattr(self, '_capabilities'):
            raise AttributeError("Snapshot is read-only")
        object.__setattr__(self, name, value)

    @property
    def variables(self):
        return self._variables

    @property
    def status(self):
        return self._status

    @property
    def host(self):
        return self._host

    @property
    def engine_usage(self):
        return self._engine_usage

    @property
    def server_version(self):
        return self._server_version

    @property
    def version_string(self):
        return self._version_string

    @property
    def capabilities(self):
        return self._capabilities

    @property
    def login_without_password(self):
        return self._login_without_password

    # --- typed accessors -------------------------------------------------

    def var_raw(self, name):
        return self._variables.get(name)

    def var_int(self, name):
        """Integer value of a variable, or None if absent or not numeric."""
        return _parse_int(self._variables.get(name), name)

    def var_bytes(self, name):
        """Byte-size variable; servers report these as plain byte counts."""
        return self.var_int(name)

    def var_number(self, name):
        """Numeric variable that may carry a fraction (e.g. long_query_time)."""
        raw = self._variables.get(name)
        if raw is None:
            return None
        try:
            return float(str(raw).strip())
        except ValueError:
            logger.debug(f"Variable {name} is not numeric: {raw!r}")
            return None

    def var_flag(self, name):
        """ON/OFF style variable as a bool, or None if absent or unrecognised."""
        raw = self._variables.get(name)
        if raw is None:
            return None
        value = str(raw).strip().upper()
        if value in _TRUE_FLAGS:
            return True
        if value in _FALSE_FLAGS:
            return False
        logger.debug(f"Variable {name} is not a flag: {raw!r}")
        return None

    def status_int(self, name):
        """Integer status counter, or None if absent or not numeric."""
        return _parse_int(self._status.get(name), name)

    def has_engine(self, flag_variable):
        """True when a have_<engine> variable reports YES."""
        raw = self._variables.get(flag_variable)
        return raw is not None and str(raw).strip().upper() == 'YES'

    @property
    def physical_memory_bytes(self):
        return self._host['physical_memory_bytes']

    @property
    def architecture(self):
        return self._host['architecture']

    @property
    def myisam_index_bytes_total(self):
        return self._host.get('myisam_index_bytes_total', UNAVAILABLE)

    def to_dict(self):
        """Plain-dict rendering for structured findings export."""
        return {
            'version': self._version_string,
            'server_version': list(self._server_version),
            'host': dict(self._host),
            'capabilities': {k: (list(v) if isinstance(v, tuple) else v)
                             for k, v in self._capabilities.items()},
            'engine_usage': {k: dict(v) for k, v in self._engine_usage.items()},
            'variable_count': len(self._variables),
            'status_count': len(self._status),
        }


def _parse_int(raw, name):
    if raw is None:
        return None
    text = str(raw).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        # Some counters arrive as "123.0" from older clients.
        value = float(text)
    except ValueError:
        logger.debug(f"Value for {name} is not numeric: {raw!r}")
        return None
    try:
        return int(value)
    except (ValueError, OverflowError):
        return None
