from rest_framework import serializers

from medcard.serializers.common import clean_text

BLOOD_GROUPS = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']


def _clean(v):
    return clean_text(v)


class MedicationSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=128)
    dosage = serializers.CharField(required=False, allow_blank=True, max_length=64)
    frequency = serializers.CharField(required=False, allow_blank=True, max_length=64)

    def validate(self, attrs):
        return {k: _clean(v) for k, v in attrs.items()}


class EmergencyContactSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    relation = serializers.CharField(required=False, allow_blank=True, max_length=50)
    phone = serializers.CharField(max_length=20)
    notes = serializers.CharField(required=False, allow_blank=True, max_length=255)

    def validate(self, attrs):
        return {k: _clean(v) for k, v in attrs.items()}


class PhysicianSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=20)
    provider_id = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, attrs):
        return {k: _clean(v) if isinstance(v, str) else v for k, v in attrs.items()}


class HealthProfileUpsertSerializer(serializers.Serializer):
    """Owner-editable profile fields; anything else in the body is ignored."""
    dob = serializers.DateField(required=False, allow_null=True)
    gender = serializers.CharField(required=False, allow_blank=True, max_length=20)
    blood_group = serializers.ChoiceField(choices=BLOOD_GROUPS, required=False, allow_blank=True)
    weight_kg = serializers.FloatField(required=False, allow_null=True, min_value=0, max_value=700)
    height_cm = serializers.FloatField(required=False, allow_null=True, min_value=0, max_value=300)
    allergies = serializers.ListField(child=serializers.CharField(max_length=128), required=False)
    chronic_conditions = serializers.ListField(child=serializers.CharField(max_length=128), required=False)
    medications = MedicationSerializer(many=True, required=False)
    emergency_contacts = EmergencyContactSerializer(many=True, required=False)
    primary_physician = PhysicianSerializer(required=False)
    public_emergency_summary = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    reset_public_id = serializers.BooleanField(required=False, default=False)

    def validate_gender(self, v):
        return _clean(v)

    def validate_allergies(self, v):
        return [_clean(x) for x in v if _clean(x)]

    def validate_chronic_conditions(self, v):
        return [_clean(x) for x in v if _clean(x)]

    def validate_public_emergency_summary(self, v):
        return _clean(v)
