"""
Institutional roles and the fixed approval hierarchy.

A result climbs the hierarchy in this order:
Course Adviser → HOD → Dean → DVC Academic → Vice Chancellor
Admin is a system-management role and never holds a slot in the chain.
"""
from django.db import models


class Role(models.TextChoices):
    COURSE_ADVISER = 'course_adviser', 'Course Adviser'
    HOD = 'hod', 'Head of Department'
    DEAN = 'dean', 'Dean'
    DVC_ACADEMIC = 'dvc_academic', 'DVC Academic'
    VICE_CHANCELLOR = 'vice_chancellor', 'Vice Chancellor'
    ADMIN = 'admin', 'System Administrator'


# Order of the approval chain
APPROVAL_HIERARCHY = (
    Role.COURSE_ADVISER,
    Role.HOD,
    Role.DEAN,
    Role.DVC_ACADEMIC,
    Role.VICE_CHANCELLOR,
)

# The submitting role self-certifies its own slot
SUBMITTER_ROLE = APPROVAL_HIERARCHY[0]


def is_hierarchy_role(role):
    return role in APPROVAL_HIERARCHY


def hierarchy_rank(role):
    """Position of the role in the chain, starting at 0 for the submitter"""
    return APPROVAL_HIERARCHY.index(role)


def action_label(role):
    """Upper-case label used in audit entries, e.g. 'DVC ACADEMIC'"""
    return Role(role).value.upper().replace('_', ' ')
