"""
Pure rules of the approval chain.

These functions only look at the ordered list of step actions, so the status
stored on a result can always be recomputed from its chain.
"""
from django.db import models


class ResultStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'
    FINAL_APPROVED = 'final_approved', 'Final Approved'


class StepAction(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'


TERMINAL_STATUSES = {ResultStatus.REJECTED, ResultStatus.FINAL_APPROVED}


def derive_status(actions):
    """
    Status of a result from its chain actions (hierarchy order).

    - rejected: any step rejected
    - final_approved: every step approved
    - approved: a step after the submitter's slot is approved
    - pending: only the submission exists so far
    """
    actions = list(actions)
    if StepAction.REJECTED in actions:
        return ResultStatus.REJECTED
    if actions and all(action == StepAction.APPROVED for action in actions):
        return ResultStatus.FINAL_APPROVED
    if any(action == StepAction.APPROVED for action in actions[1:]):
        return ResultStatus.APPROVED
    return ResultStatus.PENDING


def active_index(actions):
    """
    Index of the step whose turn it is, or None when the chain is resolved.

    A rejected step freezes the chain, so nothing after it is ever active.
    """
    for index, action in enumerate(actions):
        if action == StepAction.REJECTED:
            return None
        if action == StepAction.PENDING:
            return index
    return None


def is_terminal(status):
    return status in TERMINAL_STATUSES


def is_well_formed(actions):
    """Approved prefix, then at most one rejection, then only pending steps"""
    seen_open = False
    for action in actions:
        if seen_open:
            if action != StepAction.PENDING:
                return False
        elif action != StepAction.APPROVED:
            seen_open = True
    return True
