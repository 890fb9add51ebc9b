from rest_framework import serializers

from catalog.pricing import ORDER_TYPE_LABELS, order_type_key
from .models import Transaction


class CartLineSerializer(serializers.Serializer):
    item_id = serializers.CharField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    size = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CartSerializer(serializers.Serializer):
    order_type = serializers.CharField(required=False, default='Dining')
    items = CartLineSerializer(many=True, allow_empty=False)

    def validate_order_type(self, value):
        return ORDER_TYPE_LABELS[order_type_key(value)]


class OrderCreateSerializer(CartSerializer):
    payment_mode = serializers.ChoiceField(choices=Transaction.PAYMENT_MODE_CHOICES, default='Cash')


class SalesQuerySerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False, allow_null=True)
    date_to = serializers.DateField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs.get('date_from') and attrs.get('date_to') and attrs['date_from'] > attrs['date_to']:
            raise serializers.ValidationError({'from': "'from' must not be after 'to'."})
        return attrs
