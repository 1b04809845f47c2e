import logging

from django.conf import settings
from django.contrib.auth.models import User
from django.utils.crypto import constant_time_compare
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.exceptions import InvalidRegistrationCode
from .serializers import MeSerializer, RegisterSerializer, UserBriefSerializer

logger = logging.getLogger(__name__)


class RegisterView(APIView):
    """
    POST: Create an account. Requires the shared `registration_code`;
          tokens are then obtained from /api/token/.
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        ser = RegisterSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        expected = settings.REGISTRATION_SECRET
        if not expected or not constant_time_compare(data["registration_code"], expected):
            raise InvalidRegistrationCode()

        user = User.objects.create_user(
            username=data["username"],
            email=data["email"],
            password=data["password"],
        )
        logger.info("User registered", extra={"user_id": user.id})
        return Response(UserBriefSerializer(user).data, status=status.HTTP_201_CREATED)


class MeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(MeSerializer(request.user).data)
