# =============== MIDDLEWARE FOR TENANT CONTEXT ===============
from .resolver import load_context


class TenantContextMiddleware:
    """
    Middleware to attach the session's tenant context to requests

    Resolution from the location happens in the tenant views; every other
    endpoint reads the context stored there. None when nothing is selected.
    """
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.tenant_context = load_context(request)
        response = self.get_response(request)
        return response
