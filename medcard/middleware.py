from django.utils.cache import add_never_cache_headers


class PublicNoStoreMiddleware:
    """Keep emergency/share responses out of shared caches and search indexes."""
    PUBLIC_PREFIXES = ('/e/', '/share/', '/api/public/')

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        path = request.path or ''
        if any(path.startswith(p) for p in self.PUBLIC_PREFIXES):
            add_never_cache_headers(response)
            response['X-Robots-Tag'] = 'noindex, nofollow'
            response['Referrer-Policy'] = 'no-referrer'
        return response
