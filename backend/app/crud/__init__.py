from .crud_user import user
from .crud_organization import organization
from . import crud_gig
from . import crud_invitation
from . import crud_equipment

# Usage: `crud.user.get_user_by_email(...)`, `crud.crud_gig.get_gig(...)`.
