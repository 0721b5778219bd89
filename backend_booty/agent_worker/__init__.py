"""
Local transaction monitor: wires the ledger poller to the webhook dispatcher.
"""

from backend_booty.agent_worker.worker import MonitorPipeline, MonitorState, monitor, run_monitor

__all__ = ["MonitorPipeline", "MonitorState", "monitor", "run_monitor"]
