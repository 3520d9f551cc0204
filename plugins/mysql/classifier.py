"""
Classifier: applies the fixed threshold policy to the derived metrics.

Rules run in a fixed order (RULES). Each one reads the snapshot, the
derived metrics and the engine usage, and appends zero or more findings and
recommendations to the _Classification it is handed. Rules that do not
apply to the server version raise UnsupportedOnVersion and are skipped.
"""

import logging

from plugins.common.check_helpers import hr_bytes, hr_bytes_rnd, hr_num
from plugins.mysql.engines import LEGACY_ENGINE_FLAGS, is_engine_enabled
from plugins.mysql.exceptions import UnsupportedOnVersion
from plugins.mysql.findings import Finding, RecommendationSet, Section, Severity
from plugins.mysql.rules.analysis_rules import METRIC_ANALYSIS_CONFIG
from plugins.mysql.snapshot import UNAVAILABLE

logger = logging.getLogger(__name__)


class _Classification:
    """Accumulator owned by a single classify() call."""

    def __init__(self, snapshot, derived, engine_usage, rules_config):
        self.snapshot = snapshot
        self.derived = derived
        self.engine_usage = engine_usage
        self.rules = rules_config
        self.findings = []
        self.general = []
        self.adjustments = []

    def ok(self, metric, message, section=Section.PERFORMANCE):
        self.findings.append(Finding(metric, Severity.OK, message, section))

    def warn(self, metric, message, section=Section.PERFORMANCE):
        self.findings.append(Finding(metric, Severity.WARN, message, section))

    def recommend(self, *recommendations):
        self.general.extend(recommendations)

    def adjust(self, *adjustments):
        self.adjustments.extend(adjustments)

    def threshold(self, rule, key):
        return self.rules[rule][key]


def classify(snapshot, derived, engine_usage=None, rules_config=None):
    """
    Classifies derived metrics into findings and recommendations.

    Args:
        snapshot (Snapshot): the captured server state.
        derived (Mapping): output of calculations.derive().
        engine_usage (Mapping, optional): defaults to snapshot.engine_usage.
        rules_config (dict, optional): defaults to METRIC_ANALYSIS_CONFIG.

    Returns:
        tuple[tuple[Finding, ...], RecommendationSet]
    """
    if engine_usage is None:
        engine_usage = snapshot.engine_usage
    ctx = _Classification(snapshot, derived, engine_usage, rules_config or METRIC_ANALYSIS_CONFIG)

    for rule in RULES:
        try:
            rule(ctx)
        except UnsupportedOnVersion as e:
            logger.debug(f"Skipping {rule.__name__}: {e}")

    recommendations = RecommendationSet(ctx.general, ctx.adjustments)
    logger.info(f"Classification produced {len(ctx.findings)} findings, "
                f"{len(recommendations.general_recommendations)} general recommendations and "
                f"{len(recommendations.variable_adjustments)} variable adjustments")
    return tuple(ctx.findings), recommendations


# --- General statistics ----------------------------------------------------

def check_authentication(ctx):
    if ctx.snapshot.login_without_password:
        ctx.warn('authentication', "Successfully authenticated with no password - SECURITY RISK!",
                 Section.GENERAL)


def check_version(ctx):
    version = ctx.snapshot.version_string
    if ctx.snapshot.capabilities['is_eol']:
        ctx.warn('server_version', f"Your MySQL version {version} is EOL software!  Upgrade soon!",
                 Section.GENERAL)
    else:
        ctx.ok('server_version', f"Currently running supported MySQL version {version}", Section.GENERAL)


def check_architecture(ctx):
    if ctx.snapshot.architecture == 64:
        ctx.ok('architecture', "Operating on 64-bit architecture", Section.GENERAL)
    elif ctx.snapshot.physical_memory_bytes > ctx.threshold('architecture', 'warn_above'):
        ctx.warn('architecture', "Switch to 64-bit OS - MySQL cannot currently use all of your RAM",
                 Section.GENERAL)
    else:
        ctx.ok('architecture', "Operating on 32-bit architecture with less than 2GB RAM", Section.GENERAL)


# --- Storage engines -------------------------------------------------------

def check_unused_engines(ctx):
    for flag, engine, skip_option in LEGACY_ENGINE_FLAGS:
        if engine not in ctx.engine_usage and ctx.snapshot.has_engine(flag):
            ctx.warn(f'unused_engine_{engine.lower()}', f"{engine} is enabled but isn't being used",
                     Section.STORAGE_ENGINES)
            ctx.recommend(f"Add {skip_option} to MySQL configuration to disable {engine}")


# --- Performance metrics ---------------------------------------------------

def check_recent_restart(ctx):
    if ctx.snapshot.status_int('Uptime') < ctx.threshold('recent_restart', 'warn_below'):
        ctx.recommend("MySQL started within last 24 hours - recommendations may be inaccurate")


def check_memory_usage(ctx):
    total = ctx.derived.get('total_possible_memory_bytes')
    pct = ctx.derived.get('pct_physical_memory')
    if total is None or pct is None:
        return

    usage = f"Maximum possible memory usage: {hr_bytes(total)} ({pct}% of installed RAM)"
    if total > ctx.threshold('memory_ceiling_32bit', 'warn_above') and ctx.snapshot.architecture == 32:
        ctx.warn('total_possible_memory_bytes', "Allocating > 2GB RAM on 32-bit systems can cause system instability")
        ctx.warn('pct_physical_memory', usage)
    elif pct > ctx.threshold('memory_ceiling', 'warn_above'):
        ctx.warn('pct_physical_memory', usage)
        ctx.recommend("Reduce your overall MySQL memory footprint for system stability")
    else:
        ctx.ok('pct_physical_memory', usage)


def check_slow_queries(ctx):
    snapshot = ctx.snapshot
    pct = ctx.derived.get('pct_slow_queries')
    if pct is not None:
        message = (f"Slow queries: {pct}% ({hr_num(snapshot.status_int('Slow_queries'))}/"
                   f"{hr_num(snapshot.status_int('Questions'))})")
        if pct > ctx.threshold('slow_queries', 'warn_above'):
            ctx.warn('pct_slow_queries', message)
        else:
            ctx.ok('pct_slow_queries', message)

    long_query_time = snapshot.var_number('long_query_time')
    if long_query_time is not None and long_query_time > ctx.threshold('long_query_time', 'warn_above'):
        ctx.adjust("long_query_time (<= 10)")

    if snapshot.var_flag(snapshot.capabilities['slow_query_log_variable']) is False:
        ctx.recommend("Enable the slow query log to troubleshoot bad queries")


def check_connections(ctx):
    pct = ctx.derived.get('pct_connections_used')
    if pct is None:
        return
    snapshot = ctx.snapshot
    max_used = snapshot.status_int('Max_used_connections')
    max_connections = snapshot.var_int('max_connections')

    if pct > ctx.threshold('connection_usage', 'warn_above'):
        ctx.warn('pct_connections_used', f"Highest connection usage: {pct}%  ({max_used}/{max_connections})")
        ctx.adjust(f"max_connections (> {max_connections})",
                   f"wait_timeout (< {snapshot.var_raw('wait_timeout')})",
                   f"interactive_timeout (< {snapshot.var_raw('interactive_timeout')})")
        ctx.recommend("Reduce or eliminate persistent connections to reduce connection usage")
    else:
        ctx.ok('pct_connections_used',
               f"Highest usage of available connections: {pct}% ({max_used}/{max_connections})")


def check_key_buffer(ctx):
    snapshot = ctx.snapshot
    index_total = snapshot.myisam_index_bytes_total
    hit_rate = ctx.derived.get('pct_keys_served_from_memory')
    hit_rate_floor = ctx.threshold('key_buffer_hit_rate', 'warn_below')

    if index_total == UNAVAILABLE:
        ctx.warn('myisam_index_bytes_total', "Cannot calculate MyISAM index size - re-run script as root user")
    elif index_total == 0:
        ctx.warn('myisam_index_bytes_total', "None of your MyISAM tables are indexed - add indexes immediately")
    else:
        key_buffer_size = snapshot.var_bytes('key_buffer_size')
        if key_buffer_size is not None:
            message = f"Key buffer size / total MyISAM indexes: {hr_bytes(key_buffer_size)}/{hr_bytes(index_total)}"
            if key_buffer_size < index_total and hit_rate is not None and hit_rate < hit_rate_floor:
                ctx.warn('key_buffer_size', message)
                ctx.adjust(f"key_buffer_size (> {hr_bytes_rnd(index_total)})")
            else:
                ctx.ok('key_buffer_size', message)

    # Quiet when no key read requests were made.
    if hit_rate is not None:
        if hit_rate < hit_rate_floor:
            ctx.warn('pct_keys_served_from_memory', f"Key buffer hit rate: {hit_rate}%")
        else:
            ctx.ok('pct_keys_served_from_memory', f"Key buffer hit rate: {hit_rate}%")


def check_query_cache(ctx):
    snapshot = ctx.snapshot
    if not snapshot.capabilities['has_query_cache']:
        ctx.recommend("Upgrade MySQL to version 4+ to utilize query caching")
        return

    cache_size = snapshot.var_bytes('query_cache_size')
    if cache_size is None:
        raise UnsupportedOnVersion(f"query cache removed in MySQL {snapshot.version_string}")

    if cache_size < 1:
        ctx.warn('query_cache_size', "Query cache is disabled")
        ctx.adjust("query_cache_size (>= 8M)")
        return
    if snapshot.status_int('Com_select') == 0:
        ctx.warn('query_cache_efficiency', "Query cache cannot be analyzed - no SELECT statements executed")
        return

    efficiency = ctx.derived.get('query_cache_efficiency')
    if efficiency is not None:
        if efficiency < ctx.threshold('query_cache_efficiency', 'warn_below'):
            ctx.warn('query_cache_efficiency', f"Query cache efficiency: {efficiency}%")
            ctx.adjust("query_cache_limit (> 1M, or use smaller result sets)")
        else:
            ctx.ok('query_cache_efficiency', f"Query cache efficiency: {efficiency}%")

    prunes = ctx.derived.get('query_cache_prunes_per_day')
    if prunes is not None:
        if prunes > ctx.threshold('query_cache_prunes', 'warn_above'):
            ctx.warn('query_cache_prunes_per_day', f"Query cache prunes per day: {prunes}")
            ctx.adjust(f"query_cache_size (> {hr_bytes_rnd(cache_size)})")
        else:
            ctx.ok('query_cache_prunes_per_day', f"Query cache prunes per day: {prunes}")


def check_sorts(ctx):
    # Quiet when no sorts have run.
    pct = ctx.derived.get('pct_sorts_requiring_temp_table')
    if not ctx.derived.get('total_sorts') or pct is None:
        return

    if pct > ctx.threshold('temp_sort_tables', 'warn_above'):
        ctx.warn('pct_sorts_requiring_temp_table', f"Sorts requiring temporary tables: {pct}%")
        ctx.adjust(f"sort_buffer_size (> {hr_bytes_rnd(ctx.snapshot.var_bytes('sort_buffer_size') or 0)})",
                   f"read_rnd_buffer_size (> {hr_bytes_rnd(ctx.snapshot.var_bytes('read_rnd_buffer_size') or 0)})")
    else:
        ctx.ok('pct_sorts_requiring_temp_table', f"Sorts requiring temporary tables: {pct}%")


def check_joins(ctx):
    # Quiet unless joins without indexes exceed the daily threshold.
    per_day = ctx.derived.get('joins_without_index_per_day')
    if per_day is None or per_day <= ctx.threshold('joins_without_indexes', 'warn_above'):
        return

    join_buffer_size = ctx.snapshot.var_bytes('join_buffer_size') or 0
    ctx.warn('joins_without_index_per_day', f"Joins performed without indexes: {ctx.derived['joins_without_index']}")
    ctx.adjust(f"join_buffer_size (> {hr_bytes(join_buffer_size)}, or always use indexes with joins)")
    ctx.recommend("Adjust your join queries to always utilize indexes")


def check_temp_tables(ctx):
    # Quiet when no temporary tables have been created.
    pct = ctx.derived.get('pct_temp_disk_tables')
    if pct is None:
        return

    message = f"Temporary tables created on disk: {pct}%"
    max_temp = ctx.derived.get('max_temp_table_bytes')
    if pct > ctx.threshold('temp_disk_tables', 'warn_above'):
        ctx.warn('pct_temp_disk_tables', message)
        if max_temp is not None and max_temp < ctx.threshold('temp_disk_tables', 'large_temp_table_bytes'):
            ctx.adjust(f"tmp_table_size (> {hr_bytes_rnd(ctx.snapshot.var_bytes('tmp_table_size'))})",
                       f"max_heap_table_size (> {hr_bytes_rnd(ctx.snapshot.var_bytes('max_heap_table_size'))})")
            ctx.recommend("Be sure that tmp_table_size/max_heap_table_size are equal")
        else:
            ctx.recommend("Temporary table size is already large - reduce result set size")
        ctx.recommend("Reduce your SELECT DISTINCT queries without LIMIT clauses")
    else:
        ctx.ok('pct_temp_disk_tables', message)


def check_thread_cache(ctx):
    thread_cache_size = ctx.snapshot.var_int('thread_cache_size')
    if thread_cache_size is None:
        return

    suggested = ctx.threshold('thread_cache_hit_rate', 'suggested_size')
    if thread_cache_size == 0:
        ctx.warn('thread_cache_size', "Thread cache is disabled")
        ctx.recommend(f"Set thread_cache_size to {suggested} as a starting value")
        ctx.adjust(f"thread_cache_size (start at {suggested})")
        return

    hit_rate = ctx.derived.get('thread_cache_hit_rate')
    if hit_rate is None:
        return
    if hit_rate <= ctx.threshold('thread_cache_hit_rate', 'warn_at_or_below'):
        ctx.warn('thread_cache_hit_rate', f"Thread cache hit rate: {hit_rate}%")
        ctx.adjust(f"thread_cache_size (> {thread_cache_size})")
    else:
        ctx.ok('thread_cache_hit_rate', f"Thread cache hit rate: {hit_rate}%")


def check_table_cache(ctx):
    open_tables = ctx.snapshot.status_int('Open_tables')
    hit_rate = ctx.derived.get('table_cache_hit_rate')
    if not open_tables or hit_rate is None:
        return

    if hit_rate < ctx.threshold('table_cache_hit_rate', 'warn_below'):
        variable = ctx.snapshot.capabilities['table_cache_variable']
        ctx.warn('table_cache_hit_rate', f"Table cache hit rate: {hit_rate}%")
        ctx.adjust(f"{variable} (> {ctx.snapshot.var_raw(variable)})")
        ctx.recommend(f"Increase {variable} gradually to avoid file descriptor limits")
    else:
        ctx.ok('table_cache_hit_rate', f"Table cache hit rate: {hit_rate}%")


def check_open_files(ctx):
    limit = ctx.snapshot.var_int('open_files_limit')
    pct = ctx.derived.get('pct_open_files_used')
    if not limit or pct is None:
        return

    if pct > ctx.threshold('open_files', 'warn_above'):
        ctx.warn('pct_open_files_used', f"Open file limit used: {pct}%")
        ctx.adjust(f"open_files_limit (> {limit})")
    else:
        ctx.ok('pct_open_files_used', f"Open file limit used: {pct}%")


def check_table_locks(ctx):
    pct = ctx.derived.get('pct_table_locks_immediate')
    if pct is None:
        return

    if pct < ctx.threshold('table_locks', 'warn_below'):
        ctx.warn('pct_table_locks_immediate', f"Table locks acquired immediately: {pct}%")
        ctx.recommend("Optimize queries and/or use InnoDB to reduce lock wait")
    else:
        ctx.ok('pct_table_locks_immediate', f"Table locks acquired immediately: {pct}%")


def check_concurrent_insert(ctx):
    snapshot = ctx.snapshot
    if not snapshot.capabilities['has_concurrent_insert']:
        ctx.recommend("Upgrade to MySQL 4.1+ to use concurrent MyISAM inserts")
        return

    value = snapshot.var_raw('concurrent_insert')
    if value is None:
        return
    value = str(value).strip().upper()
    if value == 'OFF':
        ctx.recommend("Enable concurrent_insert by setting it to 'ON'")
    elif value in ('0', 'NEVER'):
        ctx.recommend("Enable concurrent_insert by setting it to 1")


def check_aborted_connections(ctx):
    pct = ctx.derived.get('pct_aborted_connections')
    if pct is None:
        return

    if pct > ctx.threshold('aborted_connections', 'warn_above'):
        ctx.warn('pct_aborted_connections', f"Connections aborted: {pct}%")
        ctx.recommend("Your applications are not closing MySQL connections properly")
    else:
        ctx.ok('pct_aborted_connections', f"Connections aborted: {pct}%")


def check_innodb_buffer_pool(ctx):
    snapshot = ctx.snapshot
    usage = ctx.engine_usage.get('InnoDB')
    if usage is None or not is_engine_enabled(snapshot, 'have_innodb'):
        return
    buffer_pool_size = snapshot.var_bytes('innodb_buffer_pool_size')
    if buffer_pool_size is None:
        return

    data_size = usage['total_data_bytes']
    message = f"InnoDB data size / buffer pool: {hr_bytes(data_size)}/{hr_bytes(buffer_pool_size)}"
    if buffer_pool_size > data_size:
        ctx.ok('innodb_buffer_pool_size', message)
    else:
        ctx.warn('innodb_buffer_pool_size', message)
        ctx.adjust(f"innodb_buffer_pool_size (>= {hr_bytes_rnd(data_size)})")


RULES = [
    check_authentication,
    check_version,
    check_architecture,
    check_unused_engines,
    check_recent_restart,
    check_memory_usage,
    check_slow_queries,
    check_connections,
    check_key_buffer,
    check_query_cache,
    check_sorts,
    check_joins,
    check_temp_tables,
    check_thread_cache,
    check_table_cache,
    check_open_files,
    check_table_locks,
    check_concurrent_insert,
    check_aborted_connections,
    check_innodb_buffer_pool,
]
