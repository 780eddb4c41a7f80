from rest_framework import serializers

from medcard.models import MedicalRecord
from medcard.serializers.common import clean_text


class AttachmentSerializer(serializers.Serializer):
    file_id = serializers.IntegerField(required=False, allow_null=True)
    url = serializers.CharField(max_length=1024)
    filename = serializers.CharField(required=False, allow_blank=True, max_length=255)
    mime = serializers.CharField(required=False, allow_blank=True, max_length=128)
    size = serializers.IntegerField(required=False, min_value=0)


class RecordWriteSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(required=False, allow_null=True)
    type = serializers.ChoiceField(choices=MedicalRecord.TYPE_CHOICES, required=False)
    title = serializers.CharField(required=False, allow_blank=True, max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, max_length=10000)
    date_of_visit = serializers.DateTimeField(required=False)
    files = AttachmentSerializer(many=True, required=False)
    tags = serializers.ListField(child=serializers.CharField(max_length=64), required=False)
    visibility = serializers.ChoiceField(choices=MedicalRecord.VISIBILITY_CHOICES, required=False)

    def validate_title(self, v):
        return clean_text(v)

    def validate_description(self, v):
        return clean_text(v, strip=False)

    def validate_tags(self, v):
        return [clean_text(t) for t in v if t.strip()]


class RecordListQuerySerializer(serializers.Serializer):
    user_id = serializers.IntegerField(required=False)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100, default=20)


class RecordSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)
    uploaded_by = serializers.IntegerField(source='uploaded_by_id', read_only=True)

    class Meta:
        model = MedicalRecord
        fields = [
            'id', 'user_id', 'uploaded_by', 'type', 'title', 'description', 'date_of_visit',
            'files', 'tags', 'verified_by_provider', 'visibility', 'created_at', 'updated_at',
        ]
