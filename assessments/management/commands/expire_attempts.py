from django.core.management.base import BaseCommand
from django.utils import timezone

from assessments.models import StudentExam
from assessments.services import expire_overdue_attempts

class Command(BaseCommand):
    help = 'Auto-submits in-progress attempts whose exam window or duration has run out'

    def add_arguments(self, parser):
        parser.add_argument('--exam', type=int, help='Only sweep attempts of this exam id')

    def handle(self, *args, **options):
        queryset = StudentExam.objects.all()
        if options.get('exam'):
            queryset = queryset.filter(exam_id=options['exam'])

        count = expire_overdue_attempts(queryset, now=timezone.now())

        if count:
            self.stdout.write(self.style.SUCCESS(f"Auto-submitted {count} overdue attempt(s)"))
        else:
            self.stdout.write("No overdue attempts found")
