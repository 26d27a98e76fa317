from bearing_monitor.domain.messages import classify_frame
from bearing_monitor.domain.rul import RulEstimate
from bearing_monitor.domain.status import Status

__all__ = ["classify_frame", "RulEstimate", "Status"]
