"""Service launching and supervision."""

from .service_launcher import Outcome, ServiceLauncher, StartOutcome, effective_timeout
from .supervisor import Supervisor, SupervisorState, order_services


__all__ = [
    'Outcome',
    'ServiceLauncher',
    'StartOutcome',
    'effective_timeout',
    'Supervisor',
    'SupervisorState',
    'order_services'
]
