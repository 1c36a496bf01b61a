from django.core.management.base import BaseCommand

from ...meetings import materialize_meetings


class Command(BaseCommand):
    help = "Move past accepted meetings to held and past pending meetings to expired"

    def handle(self, *args, **options):
        changed = materialize_meetings()
        self.stdout.write(self.style.SUCCESS(f"Materialized {changed} meeting(s)"))
