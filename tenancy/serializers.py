from rest_framework import serializers

from .location import path_for_branch


class BranchSerializer(serializers.Serializer):
    """Branch record as returned by the catalog backends"""
    id = serializers.CharField()
    hotel_id = serializers.CharField()
    hotel_name = serializers.CharField(allow_null=True, required=False)
    name = serializers.CharField()
    slug = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    qr_code_url = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    url_path = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    admin_url = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    user_url = serializers.CharField(allow_blank=True, allow_null=True, required=False)
    path = serializers.SerializerMethodField()

    def get_path(self, branch):
        page_kind = self.context.get('page_kind') or 'user'
        return path_for_branch(branch.get('hotel_name'), branch, page_kind, hotel_id=branch.get('hotel_id'))


class SelectionSerializer(serializers.Serializer):
    """Outcome of tenant resolution"""
    hotel_id = serializers.CharField(allow_blank=True)
    branch_id = serializers.CharField(allow_blank=True)
    hotel_only = serializers.BooleanField(source='is_hotel_only')
    matched_via_routing = serializers.BooleanField()
    page_kind = serializers.CharField(allow_null=True)
    ambiguous = serializers.BooleanField()
    branch = serializers.SerializerMethodField()

    def get_branch(self, selection):
        if selection.branch is None:
            return None
        return BranchSerializer(selection.branch, context=self.context).data


class BranchSwitchSerializer(serializers.Serializer):
    branch_id = serializers.CharField(max_length=64)
