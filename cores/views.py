from rest_framework import generics
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAdminUser

from .models import PlatformSetting, AuditLog
from .serializers import PlatformSettingSerializer, AuditLogSerializer


class PlatformSettingView(APIView):
    """Grading and analytics defaults: pass mark, essay max score, At Risk threshold."""
    permission_classes = [IsAdminUser]

    def get(self, request):
        return Response({"success": True, "settings": PlatformSettingSerializer(PlatformSetting.load()).data})

    def put(self, request):
        platform = PlatformSetting.load()
        serializer = PlatformSettingSerializer(platform, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        changed = ", ".join(sorted(serializer.validated_data)) or "nothing"
        AuditLog.record(request.user, 'SETTINGS', platform, f"Updated platform settings: {changed}")
        return Response({"success": True, "settings": serializer.data})


class AuditLogListView(generics.ListAPIView):
    serializer_class = AuditLogSerializer
    permission_classes = [IsAdminUser]

    def get_queryset(self):
        queryset = AuditLog.objects.select_related('actor').order_by('-timestamp')
        params = self.request.query_params
        if params.get('action'):
            queryset = queryset.filter(action=params['action'].upper())
        if params.get('target'):
            queryset = queryset.filter(target_model=params['target'])
        if params.get('actor'):
            queryset = queryset.filter(actor_id=params['actor'])
        return queryset
