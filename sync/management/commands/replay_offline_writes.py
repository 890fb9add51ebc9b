from asgiref.sync import async_to_sync
from django.core.management.base import BaseCommand

from sync.service import get_catalog_service


class Command(BaseCommand):
    help = 'Replay writes queued while the backing store was unreachable'

    def add_arguments(self, parser):
        parser.add_argument('--list', action='store_true', help='Only list queued writes')

    def handle(self, *args, **options):
        service = get_catalog_service()

        if options['list']:
            for entry in service.queue.entries():
                self.stdout.write(
                    f"{entry.id}  {entry.payload.get('op')}  branch={entry.payload.get('branch_id')}  "
                    f"queued={entry.enqueued_at}  attempts={entry.attempts}"
                )
            return

        report = async_to_sync(service.replay_offline_writes)()
        if report.skipped:
            self.stdout.write(self.style.WARNING('A replay is already running'))
            return

        for failure in report.failed:
            self.stdout.write(self.style.ERROR(f"{failure.entry_id}: {failure}"))
        self.stdout.write(self.style.SUCCESS(
            f"Replayed {len(report.replayed)} writes, {len(report.failed)} failed, {report.remaining} still queued"
        ))
