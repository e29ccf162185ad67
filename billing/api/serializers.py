from rest_framework import serializers

from billing.money import INR, SUPPORTED_CURRENCIES
from billing.services.totals_service import ENGAGEMENT_TYPES, SERVICE, InvoiceDraft, draft_from_form


class LineItemInputSerializer(serializers.Serializer):
    # Numbers arrive as typed in the form; blank counts as zero.
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    quantity = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    rate = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    amount = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class MilestoneInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    amount = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class InvoiceDraftSerializer(serializers.Serializer):
    engagement_type = serializers.ChoiceField(choices=ENGAGEMENT_TYPES, default=SERVICE)
    currency = serializers.ChoiceField(choices=SUPPORTED_CURRENCIES, default=INR)
    items = LineItemInputSerializer(many=True, required=False, default=list)
    milestones = MilestoneInputSerializer(many=True, required=False, default=list)
    retainer_period = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")

    tax_name = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    tax_percentage = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    is_gst_registered = serializers.BooleanField(required=False, default=False)
    gst_rate = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    is_tds_applicable = serializers.BooleanField(required=False, allow_null=True, default=None)
    tds_rate = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)

    def to_draft(self) -> InvoiceDraft:
        return draft_from_form(self.validated_data)
