# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services import auth_service
from .services.auth_service import VerifierProvisioningError
from .validation import AuthorizationError


def require_admin_verifier(action: str):
    """
    Require the JSON body's verifiedBy to be an admin account.

    Sets the following Flask g attributes:
    - g.current_user: the admin User
    - g.verifier_staff_id: staff_records id to stamp on the payment

    Returns 401 if verifiedBy is missing or unknown, 403 if the account is
    not an admin, and 500 if no staff record could be provisioned.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            data = request.get_json(silent=True) or {}

            try:
                user, staff_id = auth_service.resolve_admin_verifier(data.get("verifiedBy"), action)
            except AuthorizationError as e:
                return jsonify({"error": str(e)}), e.status_code
            except VerifierProvisioningError as e:
                return jsonify({"error": str(e)}), 500

            g.current_user = user
            g.verifier_staff_id = staff_id

            return f(*args, **kwargs)

        return decorated_function
    return decorator
