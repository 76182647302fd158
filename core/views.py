# core/views.py
from django.apps import apps
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from response import Response as ResponseData


@api_view(["GET"])
@permission_classes([AllowAny])
def health(request):
    """Liveness probe; also reports how many users hold a chat socket."""
    registry = apps.get_app_config("chat").registry
    return Response(
        ResponseData.success({"online_users": len(registry)}, "ok"),
        status=status.HTTP_200_OK,
    )
