from django.db.models import Count
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from assessments.permissions import IsSchoolStaff
from .models import Exam, DIFFICULTY_ORDER
from .serializers import ExamSerializer
from .stratifier import compute_bucket_sizes


class ExamViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = ExamSerializer
    permission_classes = [IsSchoolStaff]

    def get_queryset(self):
        return (
            Exam.objects.filter(school=self.request.user.school)
            .select_related('category')
            .order_by('-created_at')
        )

    @action(detail=True, methods=['get'], url_path='allocation')
    def allocation(self, request, pk=None):
        """
        Preview how many questions of each difficulty a student will be served.
        """
        exam = self.get_object()
        counts = {difficulty.value: 0 for difficulty in DIFFICULTY_ORDER}
        for row in exam.questions.values('difficulty').annotate(count=Count('id')).order_by():
            counts[row['difficulty']] = row['count']

        pool_size = sum(counts.values())
        target = exam.total_questions or pool_size
        sizes = compute_bucket_sizes(counts, target)

        return Response({
            "examId": exam.id,
            "targetTotal": target,
            "poolSize": pool_size,
            "buckets": [
                {"difficulty": key, "available": counts[key], "sampled": sizes[key]}
                for key in counts
            ],
            "servedTotal": sum(sizes.values()),
        })
