from .errors import error_body, error_response
from .auth import generate_invitation_token, normalize_email
