from .user import User, UserStatus
from .organization import Organization, OrganizationType, OrganizationMember, MemberRole, MANAGING_ROLES
from .gig import Gig, GigStatus, GigParticipant, GigStatusHistory
from .staff import StaffRole, GigStaffSlot, GigStaffAssignment, AssignmentStatus
from .bid import GigBid, BidResult
from .equipment import Asset, Kit, KitAsset, GigKitAssignment
from .invitation import Invitation, InvitationStatus

__all__ = [
    "User",
    "UserStatus",
    "Organization",
    "OrganizationType",
    "OrganizationMember",
    "MemberRole",
    "MANAGING_ROLES",
    "Gig",
    "GigStatus",
    "GigParticipant",
    "GigStatusHistory",
    "StaffRole",
    "GigStaffSlot",
    "GigStaffAssignment",
    "AssignmentStatus",
    "GigBid",
    "BidResult",
    "Asset",
    "Kit",
    "KitAsset",
    "GigKitAssignment",
    "Invitation",
    "InvitationStatus",
]
