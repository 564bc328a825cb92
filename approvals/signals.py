"""
Domain events emitted by the approval workflow.

Receivers get `result` and `actor` (an Actor) as keyword arguments, plus
`comments` for approvals and rejections.
"""
import logging

from django.dispatch import Signal

logger = logging.getLogger(__name__)

result_submitted = Signal()
result_approved = Signal()
result_rejected = Signal()


def emit(signal, sender, **kwargs):
    """Send an event; receiver failures are logged and never reach the workflow"""
    responses = signal.send_robust(sender=sender, **kwargs)
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.error(f"Error in {getattr(receiver, '__name__', receiver)}: {str(response)}")
    return responses
