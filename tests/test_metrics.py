from chat_agent.infrastructure.observability.logging import MetricsCollector


def test_empty_summary():
    assert MetricsCollector().get_metrics_summary() == {"counters": {}, "latency_ms": {}}


def test_latency_and_counters_are_summarised():
    collector = MetricsCollector()
    collector.record_latency("provider.complete", 100.0)
    collector.record_latency("provider.complete", 300.0)
    collector.increment_counter("turns.cache_hit")
    collector.increment_counter("turns.cache_hit", 2)

    summary = collector.get_metrics_summary()

    assert summary["counters"] == {"turns.cache_hit": 3}
    assert summary["latency_ms"]["provider.complete"] == {
        "count": 2, "avg": 200.0, "min": 100.0, "max": 300.0
    }
