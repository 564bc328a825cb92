from django.core.management.base import BaseCommand, CommandError

from approvals.chain import active_index, derive_status, is_well_formed
from approvals.roles import APPROVAL_HIERARCHY, hierarchy_rank, is_hierarchy_role
from approvals.store import ResultStore


class Command(BaseCommand):
    help = 'Recompute every result status from its approval chain and report any drift'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fail',
            action='store_true',
            help='Exit with an error when inconsistent results are found',
        )

    def handle(self, *args, **options):
        results = ResultStore().load_results()
        problem_count = 0

        for result in results:
            problems = self.check_result(result)
            if problems:
                problem_count += 1
                self.stdout.write(self.style.ERROR(f'Result {result.id} ({result.course_code}):'))
                for problem in problems:
                    self.stdout.write(f'  - {problem}')

        if problem_count:
            message = f'{problem_count} of {len(results)} results are inconsistent with their chains'
            if options['fail']:
                raise CommandError(message)
            self.stdout.write(self.style.WARNING(message))
        else:
            self.stdout.write(self.style.SUCCESS(f'All {len(results)} results are consistent'))

    def check_result(self, result):
        problems = []
        steps = result.steps()
        actions = [step.action for step in steps]

        if len(steps) != len(APPROVAL_HIERARCHY):
            problems.append(f'chain has {len(steps)} steps, expected {len(APPROVAL_HIERARCHY)}')
        for step in steps:
            if not is_hierarchy_role(step.role) or hierarchy_rank(step.role) != step.position:
                problems.append(f'step {step.position} is held by {step.role}, out of hierarchy order')

        if not is_well_formed(actions):
            problems.append(f'chain actions {actions} are out of order')

        expected_status = derive_status(actions)
        if result.status != expected_status:
            problems.append(f'stored status {result.status}, chain says {expected_status}')

        index = active_index(actions)
        expected_approver = steps[index].user_id if index is not None else None
        if result.current_approver_id != expected_approver:
            problems.append(
                f'current approver {result.current_approver_id}, chain says {expected_approver}'
            )

        return problems
