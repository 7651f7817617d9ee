from connmon.monitor.types import (
    EXCELLENT_LATENCY_MS,
    FAIR_LATENCY_MS,
    GOOD_LATENCY_MS,
    ConnectionQuality,
)


def classify_latency(latency_ms: float) -> ConnectionQuality:
    """Map a round-trip latency to a quality rating.

    Used for both single samples and rolling averages, so the two can
    never disagree about where a boundary sits.
    """
    if latency_ms < EXCELLENT_LATENCY_MS:
        return ConnectionQuality.EXCELLENT
    if latency_ms < GOOD_LATENCY_MS:
        return ConnectionQuality.GOOD
    if latency_ms < FAIR_LATENCY_MS:
        return ConnectionQuality.FAIR
    return ConnectionQuality.POOR
