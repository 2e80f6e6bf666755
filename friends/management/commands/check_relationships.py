import logging
from django.core.management.base import BaseCommand
from friends.relationships import (
    find_violations, describe,
    SELF_LINK, ONE_SIDED_FRIENDSHIP, FRIENDS_AND_PENDING, TWO_WAY_PENDING,
)
from friends.store import RelationshipStore

logger = logging.getLogger('blinkspace')

class Command(BaseCommand):
    help = "Check the friendship graph for broken pair invariants and optionally repair them"

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            dest='fix',
            help='Repair the violations found instead of only reporting them',
        )

    def handle(self, *args, **options):
        fix = options.get('fix', False)
        store = RelationshipStore()

        with store.atomic():
            request_links = store.request_links()
            violations = find_violations(store.friendship_links(), request_links)

            self.stdout.write(f"Found {len(violations)} relationship violations")
            for violation in violations:
                self.stdout.write(f"  {describe(violation)}")

            if not violations:
                self.stdout.write(self.style.SUCCESS('Relationship graph is consistent'))
                return

            if not fix:
                self.stdout.write("Run with --fix to repair them")
                return

            repaired = self._repair(store, violations, request_links)

        logger.info(f"check_relationships repaired {repaired} of {len(violations)} violations")
        self.stdout.write(self.style.SUCCESS(f'Repaired {repaired} relationship violations'))

    def _repair(self, store, violations, request_links):
        # Oldest request first, as returned by request_links()
        sent_order = {link: position for position, link in enumerate(request_links)}
        repaired = 0

        if any(v.kind == SELF_LINK for v in violations):
            removed = store.remove_self_links()
            self.stdout.write(f"Removed {removed} self links")
            repaired += sum(1 for v in violations if v.kind == SELF_LINK)

        for violation in violations:
            a, b = violation.from_id, violation.to_id

            if violation.kind == ONE_SIDED_FRIENDSHIP:
                store.add_friendship(a, b)
                self.stdout.write(f"Added missing friendship {b} -> {a}")
            elif violation.kind == FRIENDS_AND_PENDING:
                store.remove_request(a, b)
                self.stdout.write(f"Dropped request {a} -> {b} between friends")
            elif violation.kind == TWO_WAY_PENDING:
                # The first sender keeps the request
                newer = max((a, b), (b, a), key=sent_order.__getitem__)
                store.remove_request(*newer)
                self.stdout.write(f"Dropped request {newer[0]} -> {newer[1]}, the older one is kept")
            else:
                continue
            repaired += 1

        return repaired
