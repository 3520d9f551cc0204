# -*- coding: utf-8 -*-
# test_classifier.py: Unit tests for the threshold rules

import copy
import unittest

from plugins.mysql.calculations import derive
from plugins.mysql.classifier import classify
from plugins.mysql.findings import RecommendationSet, Section, Severity
from plugins.mysql.rules.analysis_rules import METRIC_ANALYSIS_CONFIG
from plugins.mysql.snapshot import UNAVAILABLE
from snapshot_factory import GIB, MIB, make_snapshot


def run(snapshot, rules_config=None):
    return classify(snapshot, derive(snapshot), rules_config=rules_config)


def by_metric(findings, metric):
    return [f for f in findings if f.metric == metric]


class TestClassifierBaseline(unittest.TestCase):
    def setUp(self):
        self.findings, self.recommendations = run(make_snapshot())

    def test_healthy_server_has_no_warnings(self):
        self.assertEqual([f for f in self.findings if f.severity != Severity.OK], [])
        self.assertTrue(self.recommendations.is_empty())

    def test_general_findings_come_first(self):
        self.assertEqual(self.findings[0].message, "Currently running supported MySQL version 5.7.44-log")
        self.assertEqual(self.findings[1].message, "Operating on 64-bit architecture")
        self.assertEqual({f.section for f in self.findings[:2]}, {Section.GENERAL})

    def test_performance_messages(self):
        messages = [f.message for f in self.findings if f.section == Section.PERFORMANCE]

        self.assertEqual(messages, [
            "Maximum possible memory usage: 338.9M (4% of installed RAM)",
            "Slow queries: 0% (100/1M)",
            "Highest usage of available connections: 33% (50/151)",
            "Key buffer size / total MyISAM indexes: 8.0M/4.0M",
            "Key buffer hit rate: 99.9%",
            "Query cache efficiency: 40.0%",
            "Query cache prunes per day: 0",
            "Sorts requiring temporary tables: 1%",
            "Temporary tables created on disk: 10%",
            "Thread cache hit rate: 99%",
            "Table cache hit rate: 80%",
            "Open file limit used: 2%",
            "Table locks acquired immediately: 99%",
            "Connections aborted: 0%",
            "InnoDB data size / buffer pool: 100.0M/128.0M",
        ])

    def test_idempotent(self):
        snapshot = make_snapshot(status={'Threads_created': '6000'}, variables={'thread_cache_size': '0'})

        first = run(snapshot)
        second = run(snapshot)
        self.assertEqual(first, second)


class TestGeneralRules(unittest.TestCase):
    def test_login_without_password(self):
        findings, _ = run(make_snapshot(login_without_password=True))

        self.assertEqual(findings[0].severity, Severity.WARN)
        self.assertEqual(findings[0].message, "Successfully authenticated with no password - SECURITY RISK!")

    def test_eol_version(self):
        findings, _ = run(make_snapshot(variables={'version': '4.1.22'}))

        finding = by_metric(findings, 'server_version')[0]
        self.assertEqual(finding.severity, Severity.WARN)
        self.assertEqual(finding.message, "Your MySQL version 4.1.22 is EOL software!  Upgrade soon!")

    def test_32bit_with_large_ram(self):
        findings, _ = run(make_snapshot(host={'architecture': 32, 'physical_memory_bytes': 4 * GIB}))

        finding = by_metric(findings, 'architecture')[0]
        self.assertEqual(finding.severity, Severity.WARN)
        self.assertEqual(finding.message, "Switch to 64-bit OS - MySQL cannot currently use all of your RAM")

    def test_32bit_with_small_ram(self):
        findings, _ = run(make_snapshot(host={'architecture': 32, 'physical_memory_bytes': GIB}))
        self.assertEqual(by_metric(findings, 'architecture')[0].message,
                         "Operating on 32-bit architecture with less than 2GB RAM")


class TestStorageEngineRules(unittest.TestCase):
    def test_enabled_but_unused_engines(self):
        snapshot = make_snapshot(variables={'have_innodb': 'YES', 'have_bdb': 'YES', 'have_isam': 'NO'},
                                 engine_usage={'MyISAM': {'total_data_bytes': MIB, 'table_count': 1}})
        findings, recommendations = run(snapshot)

        storage = [f for f in findings if f.section == Section.STORAGE_ENGINES]
        self.assertEqual([f.message for f in storage], [
            "InnoDB is enabled but isn't being used",
            "BDB is enabled but isn't being used",
        ])
        self.assertIn("Add skip-innodb to MySQL configuration to disable InnoDB",
                      recommendations.general_recommendations)
        self.assertIn("Add skip-bdb to MySQL configuration to disable BDB",
                      recommendations.general_recommendations)

    def test_innodb_buffer_pool_too_small(self):
        snapshot = make_snapshot(engine_usage={'InnoDB': {'total_data_bytes': 200 * MIB, 'table_count': 5}})
        findings, recommendations = run(snapshot)

        finding = by_metric(findings, 'innodb_buffer_pool_size')[0]
        self.assertEqual(finding.severity, Severity.WARN)
        self.assertEqual(finding.message, "InnoDB data size / buffer pool: 200.0M/128.0M")
        self.assertIn("innodb_buffer_pool_size (>= 200M)", recommendations.variable_adjustments)

    def test_no_innodb_tables(self):
        snapshot = make_snapshot(engine_usage={'MyISAM': {'total_data_bytes': MIB, 'table_count': 1}})
        findings, _ = run(snapshot)
        self.assertEqual(by_metric(findings, 'innodb_buffer_pool_size'), [])


class TestMemoryRules(unittest.TestCase):
    def test_over_installed_ram_on_32bit_below_2gb(self):
        snapshot = make_snapshot(host={'architecture': 32, 'physical_memory_bytes': GIB})
        derived = dict(derive(snapshot))
        derived['total_possible_memory_bytes'] = int(1.2 * GIB)
        derived['pct_physical_memory'] = 120

        findings, recommendations = classify(snapshot, derived)

        memory = by_metric(findings, 'pct_physical_memory')
        self.assertEqual(len(memory), 1)
        self.assertEqual(memory[0].severity, Severity.WARN)
        self.assertIn("120% of installed RAM", memory[0].message)
        self.assertEqual(by_metric(findings, 'total_possible_memory_bytes'), [])
        self.assertIn("Reduce your overall MySQL memory footprint for system stability",
                      recommendations.general_recommendations)

    def test_over_2gb_on_32bit(self):
        snapshot = make_snapshot(host={'architecture': 32, 'physical_memory_bytes': 8 * GIB})
        derived = dict(derive(snapshot))
        derived['total_possible_memory_bytes'] = 3 * GIB
        derived['pct_physical_memory'] = 37

        findings, _ = classify(snapshot, derived)

        self.assertEqual(by_metric(findings, 'total_possible_memory_bytes')[0].message,
                         "Allocating > 2GB RAM on 32-bit systems can cause system instability")
        self.assertEqual(by_metric(findings, 'pct_physical_memory')[0].severity, Severity.WARN)


class TestPerformanceRules(unittest.TestCase):
    def test_recent_restart(self):
        _, recommendations = run(make_snapshot(status={'Uptime': '3600'}))
        self.assertEqual(recommendations.general_recommendations[0],
                         "MySQL started within last 24 hours - recommendations may be inaccurate")

    def test_slow_queries(self):
        snapshot = make_snapshot(status={'Slow_queries': '60000'},
                                 variables={'long_query_time': '12.000000', 'slow_query_log': 'OFF'})
        findings, recommendations = run(snapshot)

        finding = by_metric(findings, 'pct_slow_queries')[0]
        self.assertEqual(finding.severity, Severity.WARN)
        self.assertEqual(finding.message, "Slow queries: 6% (60K/1M)")
        self.assertIn("long_query_time (<= 10)", recommendations.variable_adjustments)
        self.assertIn("Enable the slow query log to troubleshoot bad queries",
                      recommendations.general_recommendations)

    def test_pre_5_1_slow_query_log_variable(self):
        snapshot = make_snapshot(variables={'version': '5.0.96', 'log_slow_queries': 'OFF'})
        _, recommendations = run(snapshot)
        self.assertIn("Enable the slow query log to troubleshoot bad queries",
                      recommendations.general_recommendations)

    def test_connection_usage(self):
        findings, recommendations = run(make_snapshot(status={'Max_used_connections': '140'}))

        finding = by_metric(findings, 'pct_connections_used')[0]
        self.assertEqual(finding.severity, Severity.WARN)
        self.assertEqual(finding.message, "Highest connection usage: 92%  (140/151)")
        self.assertEqual(recommendations.variable_adjustments, (
            "max_connections (> 151)",
            "wait_timeout (< 28800)",
            "interactive_timeout (< 28800)",
        ))

    def test_key_buffer_smaller_than_indexes(self):
        snapshot = make_snapshot(variables={'key_buffer_size': str(16 * MIB)},
                                 status={'Key_read_requests': '1000', 'Key_reads': '200'},
                                 host={'myisam_index_bytes_total': 64 * MIB})
        findings, recommendations = run(snapshot)

        sizing = by_metric(findings, 'key_buffer_size')[0]
        self.assertEqual(sizing.severity, Severity.WARN)
        self.assertEqual(sizing.message, "Key buffer size / total MyISAM indexes: 16.0M/64.0M")
        self.assertIn("key_buffer_size (> 64M)", recommendations.variable_adjustments)
        hit_rate = by_metric(findings, 'pct_keys_served_from_memory')[0]
        self.assertEqual(hit_rate.severity, Severity.WARN)
        self.assertEqual(hit_rate.message, "Key buffer hit rate: 80.0%")

    def test_key_buffer_index_size_unavailable(self):
        findings, _ = run(make_snapshot(host={'myisam_index_bytes_total': UNAVAILABLE}))

        finding = by_metric(findings, 'myisam_index_bytes_total')[0]
        self.assertEqual(finding.severity, Severity.WARN)
        self.assertEqual(finding.message, "Cannot calculate MyISAM index size - re-run script as root user")
        self.assertEqual(by_metric(findings, 'key_buffer_size'), [])

    def test_key_buffer_no_indexes(self):
        findings, _ = run(make_snapshot(host={'myisam_index_bytes_total': 0}))
        self.assertEqual(by_metric(findings, 'myisam_index_bytes_total')[0].message,
                         "None of your MyISAM tables are indexed - add indexes immediately")

    def test_query_cache_disabled(self):
        findings, recommendations = run(make_snapshot(variables={'query_cache_size': '0'}))

        self.assertEqual(by_metric(findings, 'query_cache_size')[0].message, "Query cache is disabled")
        self.assertIn("query_cache_size (>= 8M)", recommendations.variable_adjustments)

    def test_query_cache_removed(self):
        snapshot = make_snapshot(variables={'version': '8.0.36'}, drop_variables=['query_cache_size'])
        findings, _ = run(snapshot)

        self.assertEqual([f for f in findings if f.metric.startswith('query_cache')], [])

    def test_query_cache_without_selects(self):
        findings, _ = run(make_snapshot(status={'Com_select': '0'}))
        self.assertEqual(by_metric(findings, 'query_cache_efficiency')[0].message,
                         "Query cache cannot be analyzed - no SELECT statements executed")

    def test_query_cache_low_efficiency_and_prunes(self):
        findings, recommendations = run(make_snapshot(status={'Qcache_hits': '10000',
                                                              'Qcache_lowmem_prunes': '1000'}))

        self.assertEqual(by_metric(findings, 'query_cache_efficiency')[0].message, "Query cache efficiency: 1.6%")
        self.assertEqual(by_metric(findings, 'query_cache_prunes_per_day')[0].message,
                         "Query cache prunes per day: 100")
        self.assertEqual(recommendations.variable_adjustments, (
            "query_cache_limit (> 1M, or use smaller result sets)",
            "query_cache_size (> 1M)",
        ))

    def test_sorts_requiring_temp_tables(self):
        findings, recommendations = run(make_snapshot(status={'Sort_merge_passes': '400'}))

        self.assertEqual(by_metric(findings, 'pct_sorts_requiring_temp_table')[0].severity, Severity.WARN)
        self.assertEqual(recommendations.variable_adjustments, (
            "sort_buffer_size (> 256K)",
            "read_rnd_buffer_size (> 256K)",
        ))

    def test_no_sorts_is_quiet(self):
        findings, _ = run(make_snapshot(status={'Sort_scan': '0', 'Sort_range': '0'}))
        self.assertEqual(by_metric(findings, 'pct_sorts_requiring_temp_table'), [])

    def test_joins_without_indexes(self):
        findings, recommendations = run(make_snapshot(status={'Select_full_join': '5000'}))

        self.assertEqual(by_metric(findings, 'joins_without_index_per_day')[0].message,
                         "Joins performed without indexes: 5000")
        self.assertIn("join_buffer_size (> 256.0K, or always use indexes with joins)",
                      recommendations.variable_adjustments)
        self.assertIn("Adjust your join queries to always utilize indexes", recommendations.general_recommendations)

    def test_no_temp_tables_is_quiet(self):
        findings, _ = run(make_snapshot(status={'Created_tmp_tables': '0', 'Created_tmp_disk_tables': '0'}))
        self.assertEqual(by_metric(findings, 'pct_temp_disk_tables'), [])

    def test_temp_tables_on_disk(self):
        findings, recommendations = run(make_snapshot(status={'Created_tmp_disk_tables': '5000'}))

        self.assertEqual(by_metric(findings, 'pct_temp_disk_tables')[0].message,
                         "Temporary tables created on disk: 50%")
        self.assertEqual(recommendations.variable_adjustments, (
            "tmp_table_size (> 16M)",
            "max_heap_table_size (> 16M)",
        ))
        self.assertEqual(recommendations.general_recommendations, (
            "Be sure that tmp_table_size/max_heap_table_size are equal",
            "Reduce your SELECT DISTINCT queries without LIMIT clauses",
        ))

    def test_temp_tables_already_large(self):
        snapshot = make_snapshot(status={'Created_tmp_disk_tables': '5000'},
                                 variables={'tmp_table_size': str(512 * MIB), 'max_heap_table_size': str(512 * MIB)})
        _, recommendations = run(snapshot)

        self.assertIn("Temporary table size is already large - reduce result set size",
                      recommendations.general_recommendations)
        self.assertNotIn("tmp_table_size (> 512M)", recommendations.variable_adjustments)

    def test_thread_cache_disabled(self):
        findings, recommendations = run(make_snapshot(variables={'thread_cache_size': '0'}))

        finding = by_metric(findings, 'thread_cache_size')[0]
        self.assertEqual(finding.severity, Severity.WARN)
        self.assertEqual(finding.message, "Thread cache is disabled")
        self.assertEqual(recommendations.general_recommendations,
                         ("Set thread_cache_size to 4 as a starting value",))
        self.assertEqual(recommendations.variable_adjustments, ("thread_cache_size (start at 4)",))
        self.assertEqual(by_metric(findings, 'thread_cache_hit_rate'), [])

    def test_thread_cache_hit_rate_at_threshold(self):
        findings, recommendations = run(make_snapshot(status={'Threads_created': '5000'}))

        self.assertEqual(by_metric(findings, 'thread_cache_hit_rate')[0].severity, Severity.WARN)
        self.assertEqual(recommendations.variable_adjustments, ("thread_cache_size (> 9)",))

    def test_table_cache(self):
        findings, recommendations = run(make_snapshot(status={'Open_tables': '100'}))

        self.assertEqual(by_metric(findings, 'table_cache_hit_rate')[0].message, "Table cache hit rate: 10%")
        self.assertEqual(recommendations.variable_adjustments, ("table_open_cache (> 2000)",))
        self.assertEqual(recommendations.general_recommendations,
                         ("Increase table_open_cache gradually to avoid file descriptor limits",))

    def test_open_files(self):
        findings, recommendations = run(make_snapshot(status={'Open_files': '4500'}))

        self.assertEqual(by_metric(findings, 'pct_open_files_used')[0].severity, Severity.WARN)
        self.assertEqual(recommendations.variable_adjustments, ("open_files_limit (> 5000)",))

    def test_no_open_files_is_ok(self):
        findings, _ = run(make_snapshot(status={'Open_files': '0'}))

        open_files = by_metric(findings, 'pct_open_files_used')
        self.assertEqual(open_files[0].severity, Severity.OK)
        self.assertEqual(open_files[0].message, "Open file limit used: 0%")

    def test_missing_per_connection_buffer_skips_memory_rule(self):
        findings, _ = run(make_snapshot(drop_variables=['sort_buffer_size']))
        self.assertEqual(by_metric(findings, 'pct_physical_memory'), [])

    def test_table_locks(self):
        findings, recommendations = run(make_snapshot(status={'Table_locks_waited': '10000'}))

        self.assertEqual(by_metric(findings, 'pct_table_locks_immediate')[0].message,
                         "Table locks acquired immediately: 90%")
        self.assertEqual(recommendations.general_recommendations,
                         ("Optimize queries and/or use InnoDB to reduce lock wait",))

    def test_concurrent_insert(self):
        for value, expected in [
            ('OFF', "Enable concurrent_insert by setting it to 'ON'"),
            ('0', "Enable concurrent_insert by setting it to 1"),
            ('NEVER', "Enable concurrent_insert by setting it to 1"),
        ]:
            _, recommendations = run(make_snapshot(variables={'concurrent_insert': value}))
            self.assertEqual(recommendations.general_recommendations, (expected,))

    def test_aborted_connections(self):
        findings, recommendations = run(make_snapshot(status={'Aborted_connects': '1000'}))

        self.assertEqual(by_metric(findings, 'pct_aborted_connections')[0].message, "Connections aborted: 10%")
        self.assertEqual(recommendations.general_recommendations,
                         ("Your applications are not closing MySQL connections properly",))

    def test_custom_rules_config(self):
        rules = copy.deepcopy(METRIC_ANALYSIS_CONFIG)
        rules['connection_usage']['warn_above'] = 30

        findings, _ = run(make_snapshot(), rules_config=rules)
        self.assertEqual(by_metric(findings, 'pct_connections_used')[0].severity, Severity.WARN)


class TestRecommendationSet(unittest.TestCase):
    def test_duplicates_and_order_kept(self):
        recs = RecommendationSet(['b', 'a', 'b'], ['x'])

        self.assertEqual(recs.general_recommendations, ('b', 'a', 'b'))
        self.assertEqual(recs.to_dict(), {'general_recommendations': ['b', 'a', 'b'],
                                          'variable_adjustments': ['x']})
        self.assertFalse(recs.is_empty())
        self.assertTrue(RecommendationSet().is_empty())


if __name__ == '__main__':
    unittest.main()
