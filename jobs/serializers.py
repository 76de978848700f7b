from rest_framework import serializers
from .models import Delivery, Job, StateChange


class JobSerializer(serializers.ModelSerializer):
    preset = serializers.SlugRelatedField(slug_field="name", read_only=True)

    class Meta:
        model = Job
        fields = [
            "id",
            "source_file",
            "destination_file",
            "preset",
            "priority",
            "arguments",
            "callback_url",
            "state",
            "host_id",
            "remote_job_id",
            "transcoding_started_at",
            "progress",
            "duration",
            "filesize",
            "message",
            "completed_at",
            "created_at",
            "updated_at",
        ]


class DeliverySerializer(serializers.ModelSerializer):
    notification = serializers.CharField(source="notification.value", read_only=True)

    class Meta:
        model = Delivery
        fields = ["id", "notification", "state", "delivered_at", "created_at"]


class StateChangeSerializer(serializers.ModelSerializer):
    deliveries = DeliverySerializer(many=True, read_only=True)

    class Meta:
        model = StateChange
        fields = ["id", "state", "message", "created_at", "deliveries"]


class JobDetailSerializer(JobSerializer):
    host = serializers.CharField(source="host.name", read_only=True, default=None)
    state_changes = StateChangeSerializer(many=True, read_only=True)

    class Meta(JobSerializer.Meta):
        fields = JobSerializer.Meta.fields + ["host", "state_changes"]


class ListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True)
    sort = serializers.CharField(required=False, allow_blank=True)
    dir = serializers.CharField(required=False, allow_blank=True)
    page = serializers.IntegerField(required=False, min_value=1)
