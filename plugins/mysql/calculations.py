"""
Derivation engine: computes the derived metrics from a Snapshot.

derive() is pure and deterministic. A metric whose inputs are absent, or
whose denominator is zero where the metric is undefined, is left out of the
result entirely; the classifier branches on that absence.
"""

import logging
from decimal import Decimal
from fractions import Fraction
from types import MappingProxyType

from plugins.common.check_helpers import floor_percentage, round_half_up
from plugins.mysql.engines import is_engine_enabled
from plugins.mysql.exceptions import MissingPrerequisite

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

REQUIRED_STATUS = ('Uptime', 'Connections')
REQUIRED_VARIABLES = ('max_connections',)

# Engine-specific server buffers; absent means the engine or feature is not
# compiled in, so they count as 0.
OPTIONAL_SERVER_BUFFERS = (
    'innodb_buffer_pool_size',
    'innodb_additional_mem_pool_size',
    'innodb_log_buffer_size',
    'query_cache_size',
)

WRITE_COMMANDS = ('Com_delete', 'Com_insert', 'Com_update', 'Com_replace')


def derive(snapshot):
    """
    Computes every derived metric for a snapshot.

    Args:
        snapshot (Snapshot): the captured server state.

    Returns:
        Mapping[str, object]: read-only metric name -> value.

    Raises:
        MissingPrerequisite: Questions is absent or zero, or one of the
            structural counters (Uptime, Connections, max_connections) is
            absent.
    """
    questions = snapshot.status_int('Questions')
    if questions is None:
        raise MissingPrerequisite("Status counter 'Questions' is not available - cannot continue",
                                  counter='Questions')
    if questions < 1:
        raise MissingPrerequisite("Your server has not answered any queries - cannot continue...",
                                  counter='Questions')
    for name in REQUIRED_STATUS:
        if snapshot.status_int(name) is None:
            raise MissingPrerequisite(f"Status counter '{name}' is not available - cannot continue",
                                      counter=name)
    for name in REQUIRED_VARIABLES:
        if snapshot.var_int(name) is None:
            raise MissingPrerequisite(f"Variable '{name}' is not available - cannot continue",
                                      counter=name)

    metrics = {}
    _derive_memory(snapshot, metrics)
    _derive_queries(snapshot, metrics, questions)
    _derive_key_buffer(snapshot, metrics)
    _derive_query_cache(snapshot, metrics)
    _derive_sorts_and_joins(snapshot, metrics)
    _derive_tables(snapshot, metrics)
    _derive_threads(snapshot, metrics)
    _derive_innodb(snapshot, metrics)
    logger.debug(f"Derived {len(metrics)} metrics")
    return MappingProxyType(metrics)


def _per_day(count, uptime):
    """count / (uptime / 86400), truncated; None when uptime is 0."""
    if not uptime:
        return None
    return (count * SECONDS_PER_DAY) // uptime


def _derive_memory(snapshot, metrics):
    per_thread_sizes = [snapshot.var_bytes(name)
                        for name in snapshot.capabilities['per_thread_buffer_variables']]
    if None in per_thread_sizes:
        logger.debug("Per-connection buffer variable missing; memory totals not computed")
        return
    per_thread = sum(per_thread_sizes)
    max_connections = snapshot.var_int('max_connections')
    max_used = snapshot.status_int('Max_used_connections')

    metrics['per_thread_buffer_bytes'] = per_thread
    metrics['total_per_thread_buffer_bytes'] = per_thread * max_connections
    if max_used is not None:
        metrics['max_total_per_thread_buffer_bytes'] = per_thread * max_used

    tmp_table_size = snapshot.var_bytes('tmp_table_size')
    max_heap_table_size = snapshot.var_bytes('max_heap_table_size')
    key_buffer_size = snapshot.var_bytes('key_buffer_size')
    if tmp_table_size is None or max_heap_table_size is None or key_buffer_size is None:
        logger.debug("tmp_table_size, max_heap_table_size or key_buffer_size missing; "
                     "memory totals not computed")
        return

    metrics['max_temp_table_bytes'] = min(tmp_table_size, max_heap_table_size)
    server_wide = key_buffer_size + metrics['max_temp_table_bytes']
    server_wide += sum(snapshot.var_bytes(name) or 0 for name in OPTIONAL_SERVER_BUFFERS)
    metrics['server_wide_buffer_bytes'] = server_wide

    if 'max_total_per_thread_buffer_bytes' in metrics:
        metrics['max_possible_memory_bytes'] = server_wide + metrics['max_total_per_thread_buffer_bytes']
    metrics['total_possible_memory_bytes'] = server_wide + metrics['total_per_thread_buffer_bytes']

    physical_memory = snapshot.physical_memory_bytes
    if physical_memory:
        metrics['pct_physical_memory'] = floor_percentage(metrics['total_possible_memory_bytes'],
                                                          physical_memory)


def _derive_queries(snapshot, metrics, questions):
    uptime = snapshot.status_int('Uptime')
    if uptime > 0:
        metrics['queries_per_second'] = round_half_up(Decimal(questions) / uptime, 3)

    slow_queries = snapshot.status_int('Slow_queries')
    if slow_queries is not None:
        metrics['pct_slow_queries'] = floor_percentage(slow_queries, questions)

    max_used = snapshot.status_int('Max_used_connections')
    pct_used = floor_percentage(max_used, snapshot.var_int('max_connections')) \
        if max_used is not None else None
    if pct_used is not None:
        metrics['pct_connections_used'] = min(100, pct_used)

    reads = snapshot.status_int('Com_select')
    write_counts = [snapshot.status_int(name) for name in WRITE_COMMANDS]
    if reads is not None and None not in write_counts:
        writes = sum(write_counts)
        metrics['total_reads'] = reads
        metrics['total_writes'] = writes
        if reads == 0:
            metrics['pct_reads'] = 0
            metrics['pct_writes'] = 100
        else:
            metrics['pct_reads'] = floor_percentage(reads, reads + writes)
            metrics['pct_writes'] = 100 - metrics['pct_reads']


def _derive_key_buffer(snapshot, metrics):
    key_buffer_size = snapshot.var_bytes('key_buffer_size')
    if snapshot.capabilities['has_key_blocks_unused']:
        unused_blocks = snapshot.status_int('Key_blocks_unused')
        block_size = snapshot.var_bytes('key_cache_block_size')
        if unused_blocks is not None and block_size is not None and key_buffer_size:
            unused_fraction = Decimal(unused_blocks * block_size) / Decimal(key_buffer_size)
            metrics['pct_key_buffer_used'] = round_half_up((1 - unused_fraction) * 100)

    read_requests = snapshot.status_int('Key_read_requests')
    key_reads = snapshot.status_int('Key_reads')
    if read_requests and key_reads is not None:
        miss_pct = Decimal(key_reads) * 100 / Decimal(read_requests)
        metrics['pct_keys_served_from_memory'] = round_half_up(100 - miss_pct)


def _derive_query_cache(snapshot, metrics):
    if not snapshot.capabilities['has_query_cache']:
        return

    hits = snapshot.status_int('Qcache_hits')
    selects = snapshot.status_int('Com_select')
    if hits is not None and selects is not None and (selects + hits) > 0:
        metrics['query_cache_efficiency'] = round_half_up(Decimal(hits) * 100 / Decimal(selects + hits))

    cache_size = snapshot.var_bytes('query_cache_size')
    free_memory = snapshot.status_int('Qcache_free_memory')
    if cache_size and free_memory is not None:
        metrics['pct_query_cache_used'] = round_half_up(100 - Decimal(free_memory) * 100 / Decimal(cache_size))

    prunes = snapshot.status_int('Qcache_lowmem_prunes')
    if prunes == 0:
        metrics['query_cache_prunes_per_day'] = 0
    elif prunes is not None:
        per_day = _per_day(prunes, snapshot.status_int('Uptime'))
        if per_day is not None:
            metrics['query_cache_prunes_per_day'] = per_day


def _derive_sorts_and_joins(snapshot, metrics):
    uptime = snapshot.status_int('Uptime')

    scan_sorts = snapshot.status_int('Sort_scan')
    range_sorts = snapshot.status_int('Sort_range')
    if scan_sorts is not None and range_sorts is not None:
        total_sorts = scan_sorts + range_sorts
        metrics['total_sorts'] = total_sorts
        merge_passes = snapshot.status_int('Sort_merge_passes')
        if total_sorts > 0 and merge_passes is not None:
            metrics['pct_sorts_requiring_temp_table'] = floor_percentage(merge_passes, total_sorts)

    range_check = snapshot.status_int('Select_range_check')
    full_join = snapshot.status_int('Select_full_join')
    if range_check is not None and full_join is not None:
        joins = range_check + full_join
        metrics['joins_without_index'] = joins
        per_day = _per_day(joins, uptime)
        if per_day is not None:
            metrics['joins_without_index_per_day'] = per_day


def _derive_tables(snapshot, metrics):
    created_tmp = snapshot.status_int('Created_tmp_tables')
    created_tmp_disk = snapshot.status_int('Created_tmp_disk_tables')
    if created_tmp and created_tmp_disk is not None:
        metrics['pct_temp_disk_tables'] = floor_percentage(created_tmp_disk, created_tmp)

    opened_tables = snapshot.status_int('Opened_tables')
    open_tables = snapshot.status_int('Open_tables')
    if opened_tables == 0:
        metrics['table_cache_hit_rate'] = 100
    elif opened_tables is not None and open_tables is not None:
        metrics['table_cache_hit_rate'] = floor_percentage(open_tables, opened_tables)

    open_files = snapshot.status_int('Open_files')
    open_files_limit = snapshot.var_int('open_files_limit')
    if open_files is not None and open_files_limit and open_files_limit > 0:
        metrics['pct_open_files_used'] = floor_percentage(open_files, open_files_limit)

    immediate = snapshot.status_int('Table_locks_immediate')
    waited = snapshot.status_int('Table_locks_waited')
    if immediate and immediate > 0:
        if not waited:
            metrics['pct_table_locks_immediate'] = 100
        else:
            metrics['pct_table_locks_immediate'] = floor_percentage(immediate, immediate + waited)


def _derive_threads(snapshot, metrics):
    connections = snapshot.status_int('Connections')
    if not connections:
        return

    threads_created = snapshot.status_int('Threads_created')
    if threads_created is not None:
        # int() on a Fraction truncates toward zero, exactly.
        metrics['thread_cache_hit_rate'] = int(100 - Fraction(threads_created * 100, connections))

    aborted = snapshot.status_int('Aborted_connects')
    if aborted is not None:
        metrics['pct_aborted_connections'] = floor_percentage(aborted, connections)


def _derive_innodb(snapshot, metrics):
    if not is_engine_enabled(snapshot, 'have_innodb'):
        return
    log_file_size = snapshot.var_bytes('innodb_log_file_size')
    buffer_pool_size = snapshot.var_bytes('innodb_buffer_pool_size')
    if log_file_size is not None and buffer_pool_size:
        metrics['innodb_log_to_buffer_pool_pct'] = round_half_up(
            Decimal(log_file_size) * 100 / Decimal(buffer_pool_size))
