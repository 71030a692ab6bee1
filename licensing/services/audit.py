from licensing.models import AccessLog
from licensing.threadlocals import get_current_user
from licensing.utils import get_client_ip


def log_access(request, model_name, object_id):
    user = get_current_user() or getattr(request, 'user', None)
    AccessLog.objects.create(
        user=user if user is not None and user.is_authenticated else None,
        model_name=model_name,
        object_id=str(object_id),
        method=request.method,
        ip_address=get_client_ip(request),
        endpoint=request.path,
    )
