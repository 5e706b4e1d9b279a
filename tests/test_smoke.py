def test_imports():
    # Smoke test to ensure modules import
    import importlib

    modules = [
        "perf_ledger.controllers.performance_ledger",
        "perf_ledger.controllers.session_tracker",
        "perf_ledger.executors.call_gateway",
        "perf_ledger.executors.webhook_publisher",
        "perf_ledger.scripts.replay_calls",
        "perf_ledger.utils.errors",
        "perf_ledger.utils.event_log",
        "perf_ledger.utils.events",
        "perf_ledger.utils.performance_tracker",
    ]

    for m in modules:
        importlib.import_module(m)
