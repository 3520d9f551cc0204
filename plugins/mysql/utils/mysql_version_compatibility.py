"""
MySQL Version Compatibility Module

This module resolves, once per run, which variable names, counters and
queries apply to the connected MySQL/MariaDB server. Downstream code reads
the resolved capability dictionary instead of comparing versions itself.
"""

import re

# (first version, first version NOT covered) -> value. Ranges are checked in
# order; None as an upper bound means "and everything newer".
CAPABILITY_TABLE = {
    'per_thread_buffer_variables': [
        ((0, 0), (4, 0), ('record_buffer', 'record_rnd_buffer', 'sort_buffer',
                          'thread_stack', 'join_buffer_size')),
        ((4, 0), None, ('read_buffer_size', 'read_rnd_buffer_size', 'sort_buffer_size',
                        'thread_stack', 'join_buffer_size')),
    ],
    'has_key_blocks_unused': [
        ((0, 0), (4, 1), False),
        ((4, 1), None, True),
    ],
    'has_query_cache': [
        ((0, 0), (4, 0), False),
        ((4, 0), None, True),
    ],
    'has_concurrent_insert': [
        ((0, 0), (4, 1), False),
        ((4, 1), None, True),
    ],
    'table_cache_variable': [
        ((0, 0), (5, 1), 'table_cache'),
        ((5, 1), None, 'table_open_cache'),
    ],
    'slow_query_log_variable': [
        ((0, 0), (5, 1), 'log_slow_queries'),
        ((5, 1), None, 'slow_query_log'),
    ],
    'has_information_schema': [
        ((0, 0), (5, 0), False),
        ((5, 0), None, True),
    ],
    'is_eol': [
        ((0, 0), (5, 0), True),
        ((5, 0), None, False),
    ],
}

SYSTEM_SCHEMAS = ('information_schema', 'performance_schema', 'sys')


def parse_version(version_string):
    """
    Extracts (major, minor) from a server version string.

    Args:
        version_string (str): e.g. '5.7.44-log' or '10.6.16-MariaDB'.

    Returns:
        tuple: (major, minor) integers, (0, 0) if nothing parses.
    """
    match = re.match(r'\s*(\d+)\.(\d+)', version_string or '')
    if not match:
        return (0, 0)
    return (int(match.group(1)), int(match.group(2)))


def resolve_capabilities(server_version):
    """
    Resolves every entry of CAPABILITY_TABLE for one (major, minor) version.

    Returns:
        dict: capability name -> resolved value.
    """
    resolved = {}
    for name, ranges in CAPABILITY_TABLE.items():
        for lower, upper, value in ranges:
            if server_version >= lower and (upper is None or server_version < upper):
                resolved[name] = value
                break
    return resolved


def get_table_engine_sizes_query(capabilities):
    """
    Returns the query listing (schema, engine, data length) for user tables.

    Servers before 5.0 have no information_schema; callers must fall back to
    SHOW TABLE STATUS per database, signalled by a None return.
    """
    if capabilities.get('has_information_schema'):
        placeholders = ', '.join(['%s'] * len(SYSTEM_SCHEMAS))
        return f"""
            SELECT TABLE_SCHEMA, ENGINE, DATA_LENGTH
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA NOT IN ({placeholders})
        """
    return None
