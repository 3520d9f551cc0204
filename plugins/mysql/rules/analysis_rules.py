# --- Configuration for Metric Analysis ---
# MySQL Rules
#
# Thresholds read by plugins/mysql/classifier.py. Each entry names the
# derived metric it applies to and the boundary at which the finding turns
# into a warning. Comparisons are strict unless the key says otherwise.
METRIC_ANALYSIS_CONFIG = {
    'architecture': {
        'metric': 'physical_memory_bytes',
        'warn_above': 2 * 1024 ** 3,
    },
    'memory_ceiling_32bit': {
        'metric': 'total_possible_memory_bytes',
        'warn_above': 2 * 1024 ** 3,
    },
    'memory_ceiling': {
        'metric': 'pct_physical_memory',
        'warn_above': 85,
    },
    'recent_restart': {
        'metric': 'Uptime',
        'warn_below': 86400,
    },
    'slow_queries': {
        'metric': 'pct_slow_queries',
        'warn_above': 5,
    },
    'long_query_time': {
        'metric': 'long_query_time',
        'warn_above': 10,
    },
    'connection_usage': {
        'metric': 'pct_connections_used',
        'warn_above': 85,
    },
    'key_buffer_hit_rate': {
        'metric': 'pct_keys_served_from_memory',
        'warn_below': 95,
    },
    'query_cache_efficiency': {
        'metric': 'query_cache_efficiency',
        'warn_below': 20,
    },
    'query_cache_prunes': {
        'metric': 'query_cache_prunes_per_day',
        'warn_above': 98,
    },
    'temp_sort_tables': {
        'metric': 'pct_sorts_requiring_temp_table',
        'warn_above': 10,
    },
    'joins_without_indexes': {
        'metric': 'joins_without_index_per_day',
        'warn_above': 250,
    },
    'temp_disk_tables': {
        'metric': 'pct_temp_disk_tables',
        'warn_above': 25,
        # Below this max_temp_table_bytes the temp table variables are still
        # worth raising.
        'large_temp_table_bytes': 256 * 1024 ** 2,
    },
    'thread_cache_hit_rate': {
        'metric': 'thread_cache_hit_rate',
        'warn_at_or_below': 50,
        'suggested_size': 4,
    },
    'table_cache_hit_rate': {
        'metric': 'table_cache_hit_rate',
        'warn_below': 20,
    },
    'open_files': {
        'metric': 'pct_open_files_used',
        'warn_above': 85,
    },
    'table_locks': {
        'metric': 'pct_table_locks_immediate',
        'warn_below': 95,
    },
    'aborted_connections': {
        'metric': 'pct_aborted_connections',
        'warn_above': 5,
    },
}
