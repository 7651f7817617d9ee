from connmon.heartbeat.driver import HEARTBEAT_INTERVAL, HEARTBEAT_TIMEOUT, HeartbeatDriver

__all__ = ["HeartbeatDriver", "HEARTBEAT_INTERVAL", "HEARTBEAT_TIMEOUT"]
