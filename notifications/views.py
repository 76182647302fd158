from django.forms import ValidationError
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from response import Response as ResponseData
from .email_utils import send_email
from .serializers import SendEmailSerializer


@api_view(["POST"])
@permission_classes([AllowAny])
def send_email_view(request):
    """
    API to send a one-off HTML email.

    Expects:
        - to (email address)
        - subject
        - body (HTML)
    """
    ser = SendEmailSerializer(data=request.data)
    if not ser.is_valid():
        return Response(ResponseData.error("Invalid data", ser.errors), status=status.HTTP_400_BAD_REQUEST)

    try:
        send_email(**ser.validated_data)
    except ValidationError as e:
        return Response(ResponseData.error(e.messages[0]), status=status.HTTP_502_BAD_GATEWAY)

    return Response(ResponseData.success_without_data("Email sent"), status=status.HTTP_200_OK)
