import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from licensing.custom_permissions import IsStaffUser
from licensing.services.cache import get_cache

logger = logging.getLogger(__name__)


class CacheHealthView(APIView):
    permission_classes = [IsAuthenticated, IsStaffUser]

    def get(self, request):
        cache = get_cache()
        healthy = cache.is_healthy()
        return Response(
            {'healthy': healthy, 'backend': cache.backend.name},
            status=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )


class CacheStatsView(APIView):
    permission_classes = [IsAuthenticated, IsStaffUser]

    def get(self, request):
        stats = get_cache().stats()
        if stats is None:
            return Response({'error': 'Cache statistics unavailable'}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response(stats)


class CacheClearView(APIView):
    permission_classes = [IsAuthenticated, IsStaffUser]

    def post(self, request):
        pattern = request.data.get('pattern')
        cache = get_cache()
        removed = cache.delete_pattern(pattern) if pattern else cache.clear()
        logger.info("Cache cleared by %s (pattern %s, %s keys)", request.user.username, pattern or '*', removed)
        return Response({'cleared': removed})
