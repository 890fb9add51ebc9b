from decimal import Decimal

from rest_framework import serializers
from rest_framework.exceptions import PermissionDenied

from .gst import GstSettings, scoped_key
from .models import MenuItem
from .pricing import GstRate, ORDER_TYPE_KEYS, PRICING_EXCLUSIVE, PRICING_INCLUSIVE


def _rate_field(**kwargs):
    return serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal('0'), max_value=Decimal('100'), **kwargs
    )


def _float(value):
    return float(value) if value is not None else None


class GstRateSerializer(serializers.Serializer):
    cgst = _rate_field(required=False, allow_null=True)
    sgst = _rate_field(required=False, allow_null=True)


class GstOverridesSerializer(serializers.Serializer):
    """Per-item rates by order type; a null rate falls back to the branch default"""
    dining = GstRateSerializer(required=False)
    takeaway = GstRateSerializer(required=False)
    onlineorder = GstRateSerializer(required=False)


class MenuItemWriteSerializer(serializers.Serializer):
    """
    Authored fields of a menu item. Exactly one of price (single price) or
    sizes (has_sizes=True) carries the price; the pricing matrix is derived.
    """
    hotel_id = serializers.CharField(required=False, allow_blank=True)
    branch_id = serializers.CharField(required=False, allow_blank=True)
    name = serializers.CharField(max_length=255)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    image_url = serializers.URLField(max_length=500, required=False, allow_blank=True, default='')
    availability = serializers.ChoiceField(choices=MenuItem.AVAILABILITY_CHOICES, default='Available')
    price = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    has_sizes = serializers.BooleanField(default=False)
    sizes = serializers.DictField(required=False, allow_null=True)
    pricing_mode = serializers.ChoiceField(
        choices=[PRICING_INCLUSIVE, PRICING_EXCLUSIVE], default=PRICING_INCLUSIVE
    )
    show_tax_on_bill = serializers.BooleanField(default=True)
    gst = GstOverridesSerializer(required=False)

    def validate_sizes(self, value):
        if value is None:
            return None
        sizes = {}
        for size_key, entry in value.items():
            amount = entry.get('price') if isinstance(entry, dict) else entry
            field = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
            try:
                amount = field.run_validation(amount)
            except serializers.ValidationError as exc:
                raise serializers.ValidationError({size_key: exc.detail})
            if amount is not None:
                sizes[str(size_key).strip()] = amount
        return sizes

    def validate(self, attrs):
        if attrs.get('has_sizes'):
            sizes = attrs.get('sizes') or {}
            if not sizes:
                raise serializers.ValidationError({'sizes': 'Add at least one size with a price.'})
            bad = [key for key, amount in sizes.items() if amount <= 0]
            if bad:
                raise serializers.ValidationError({'sizes': f"Prices must be greater than zero: {', '.join(bad)}"})
            attrs['price'] = None
        else:
            price = attrs.get('price')
            if price is None:
                raise serializers.ValidationError({'price': 'Price is required.'})
            if price <= 0:
                raise serializers.ValidationError({'price': 'Price must be greater than zero.'})
            attrs['sizes'] = None
        return attrs

    def to_record(self):
        """validated_data as a JSON friendly menu item record"""
        data = dict(self.validated_data)
        data['price'] = _float(data.get('price'))
        if data.get('sizes'):
            data['sizes'] = {key: {'price': float(amount)} for key, amount in data['sizes'].items()}
        gst = data.pop('gst', None) or {}
        data['gst'] = {
            key: {'cgst': _float((gst.get(key) or {}).get('cgst')), 'sgst': _float((gst.get(key) or {}).get('sgst'))}
            for key in ORDER_TYPE_KEYS
        }
        for field in ('hotel_id', 'branch_id'):
            if not data.get(field):
                data.pop(field, None)
        return data


class GstSettingsSerializer(serializers.Serializer):
    """GST defaults for every order type plus the two switches"""
    SCOPE_GLOBAL = 'global'
    SCOPE_BRANCH = 'branch'

    dining = GstRateSerializer()
    takeaway = GstRateSerializer()
    onlineorder = GstRateSerializer()
    enabled = serializers.BooleanField(default=True)
    show_tax_on_bill = serializers.BooleanField(default=True)
    # staff default to global, hotel admins to branch
    scope = serializers.ChoiceField(choices=[SCOPE_GLOBAL, SCOPE_BRANCH], required=False, write_only=True)

    def validate(self, attrs):
        for key in ORDER_TYPE_KEYS:
            rate = attrs.get(key) or {}
            if rate.get('cgst') is None or rate.get('sgst') is None:
                raise serializers.ValidationError({key: 'Both cgst and sgst are required.'})
        return attrs

    def to_settings(self):
        data = self.validated_data
        return GstSettings(
            rates={key: GstRate(cgst=data[key]['cgst'], sgst=data[key]['sgst']) for key in ORDER_TYPE_KEYS},
            enabled=data['enabled'],
            show_tax_on_bill=data['show_tax_on_bill'],
        )

    def scope_for(self, user):
        """Requested scope, or the default for this user. Only staff may write global defaults."""
        scope = self.validated_data.get('scope') or (self.SCOPE_GLOBAL if user.is_staff else self.SCOPE_BRANCH)
        if scope == self.SCOPE_GLOBAL and not user.is_staff:
            raise PermissionDenied('Only staff can change the global GST defaults.')
        return scope

    def to_config(self, branch_id=None, scope=None):
        """Config rows to write; branch scope prefixes every key with the branch id."""
        values = self.to_settings().to_config()
        if (scope or self.validated_data.get('scope')) == self.SCOPE_BRANCH:
            if not branch_id:
                raise serializers.ValidationError({'scope': 'No branch selected.'})
            values = {scoped_key(branch_id, key): value for key, value in values.items()}
        return values
