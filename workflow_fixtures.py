"""
Shared setup for the workflow tests: a small institution with one holder per role.
"""
from django.contrib.auth.models import User

from approvals.audit_service import AuditLedger
from approvals.directory import RoleDirectory
from approvals.models import UserRole
from approvals.roles import Role
from approvals.store import ResultStore
from approvals.visibility_service import ResultVisibilityService
from approvals.workflow_service import ResultWorkflowService

INSTITUTION = [
    ('adviser', 'Sarah', 'Johnson', Role.COURSE_ADVISER, 'Computer Science'),
    ('hod', 'Michael', 'Chen', Role.HOD, 'Computer Science'),
    ('dean', 'Elizabeth', 'Thompson', Role.DEAN, 'Faculty of Engineering'),
    ('dvc', 'Robert', 'Williams', Role.DVC_ACADEMIC, 'Academic Affairs'),
    ('vc', 'Amanda', 'Davis', Role.VICE_CHANCELLOR, 'Executive Office'),
    ('admin', 'System', 'Administrator', Role.ADMIN, 'ICT'),
]


def create_user(username, first_name, last_name, role, department=''):
    user = User.objects.create_user(
        username=username,
        email=f'{username}@university.edu',
        first_name=first_name,
        last_name=last_name,
    )
    UserRole.objects.create(user=user, role=role, department=department)
    return user


def create_institution():
    """Returns {role: user} for every role"""
    return {
        role: create_user(username, first_name, last_name, role, department)
        for username, first_name, last_name, role, department in INSTITUTION
    }


def build_services():
    store = ResultStore()
    ledger = AuditLedger()
    workflow = ResultWorkflowService(store, ledger, RoleDirectory())
    return workflow, ResultVisibilityService(store), ledger


def result_payload(**overrides):
    payload = {
        'student_id': 'CS2021001',
        'student_name': 'John Smith',
        'course_code': 'CS301',
        'course_name': 'Data Structures and Algorithms',
        'score': 85,
        'semester': 'Fall 2024',
        'academic_year': '2024-2025',
    }
    payload.update(overrides)
    return payload


def chain_snapshot(result):
    """Comparable view of a result's chain as stored"""
    return [
        (step.position, step.role, step.user_id, step.user_name, step.action,
         step.comments, step.timestamp, step.transaction_hash)
        for step in result.approval_chain.order_by('position')
    ]
