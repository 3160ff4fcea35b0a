"""
Serializers for authentication models.

Only read serializers live here; token issuance is handled by simplejwt.
"""

from rest_framework import serializers

from authentication.models import User


class UserSerializer(serializers.ModelSerializer):
    """
    Public identity of a user, as embedded in chat payloads.

    Includes profile data for convenience.
    """

    full_name = serializers.SerializerMethodField()
    first_name = serializers.SerializerMethodField()
    avatar = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "full_name",
            "first_name",
            "avatar",
        ]
        read_only_fields = fields

    def get_full_name(self, obj) -> str:
        return obj.get_full_name()

    def get_first_name(self, obj) -> str:
        return obj.get_short_name()

    def get_avatar(self, obj) -> str:
        profile = getattr(obj, "profile", None)
        return profile.avatar if profile else ""
