from rest_framework import serializers


class SendEmailSerializer(serializers.Serializer):
    to      = serializers.EmailField()
    subject = serializers.CharField(max_length=255)
    body    = serializers.CharField(help_text="HTML body of the email.")
