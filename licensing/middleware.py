from licensing.threadlocals import clear_current_user, set_current_user


class CurrentUserMiddleware:
    """
    Remember the authenticated session user for the duration of the request
    so that model signals can attribute changes to it.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, "user", None)
        set_current_user(user if user is not None and user.is_authenticated else None)
        try:
            return self.get_response(request)
        finally:
            clear_current_user()
