"""
Storage-engine usage aggregation.

Turns (engine, data length) rows from every user schema into per-engine
totals. Scanning is best-effort: table status output differs across server
versions, so an unparseable or negative size counts as 0 rather than failing.
"""

import logging

logger = logging.getLogger(__name__)

# Engine flag variable, engine name as reported in table status, skip option.
LEGACY_ENGINE_FLAGS = [
    ('have_innodb', 'InnoDB', 'skip-innodb'),
    ('have_bdb', 'BDB', 'skip-bdb'),
    ('have_isam', 'ISAM', 'skip-isam'),
]

# Order of the +/- engine status line.
ENGINE_STATUS_FLAGS = [
    ('have_archive', 'Archive'),
    ('have_bdb', 'BDB'),
    ('have_federated', 'Federated'),
    ('have_innodb', 'InnoDB'),
    ('have_isam', 'ISAM'),
    ('have_ndbcluster', 'NDBCluster'),
]


def is_engine_enabled(snapshot, flag_variable):
    """
    True when the server reports the engine as available.

    MySQL 5.6 dropped have_innodb; there InnoDB counts as enabled when the
    server exposes innodb_version.
    """
    raw = snapshot.var_raw(flag_variable)
    if raw is None and flag_variable == 'have_innodb':
        return snapshot.var_raw('innodb_version') is not None
    return snapshot.has_engine(flag_variable)


def _parse_size(raw):
    if raw is None:
        return 0
    text = str(raw).strip()
    if not text.isdecimal():
        return 0
    return int(text)


def aggregate_engine_usage(rows):
    """
    Aggregates table data sizes per storage engine.

    Args:
        rows (iterable): (engine_name, data_size) pairs. data_size may be an
            int, a numeric string, None or garbage.

    Returns:
        dict: engine -> {'total_data_bytes': int, 'table_count': int}, in
        first-seen order.
    """
    usage = {}
    for engine, size in rows:
        if not engine:
            # Views and some temporary entries carry no engine.
            continue
        engine = str(engine).strip()
        parsed = _parse_size(size)
        if parsed == 0 and size not in (0, '0'):
            logger.debug(f"Unparseable table size {size!r} for engine {engine}; counted as 0")
        totals = usage.setdefault(engine, {'total_data_bytes': 0, 'table_count': 0})
        totals['total_data_bytes'] += parsed
        totals['table_count'] += 1
    return usage
