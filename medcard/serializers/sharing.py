from rest_framework import serializers


class ShareTokenIssueSerializer(serializers.Serializer):
    record_ids = serializers.ListField(child=serializers.CharField(max_length=32), required=False, allow_empty=True)
    user_id = serializers.IntegerField(required=False, allow_null=True)
    expires_in_minutes = serializers.IntegerField(required=False, min_value=1, max_value=60 * 24 * 365)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)
    single_use = serializers.BooleanField(required=False, default=True)

    def validate(self, attrs):
        has_records = bool(attrs.get('record_ids'))
        has_user = attrs.get('user_id') is not None
        if has_records == has_user:
            raise serializers.ValidationError('Provide exactly one of record_ids or user_id.')
        if attrs.get('expires_in_minutes') and attrs.get('expires_at'):
            raise serializers.ValidationError('Provide expires_in_minutes or expires_at, not both.')
        return attrs
