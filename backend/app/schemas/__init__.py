from .user import (
    UserBase,
    UserCreate,
    UserUpdate,
    UserResponse,
    UserSummary,
    UserOrganizationResponse,
    TokenData,
)
from .organization import (
    OrganizationCreate,
    OrganizationUpdate,
    OrganizationResponse,
    MemberResponse,
    MemberUpdate,
    InvitationCreate,
    InvitationResponse,
)
from .gig import (
    GigForm,
    GigPatch,
    GigResponse,
    GigDetailResponse,
    GigSaveResponse,
    SaveReport,
    SubResourceStatus,
    ParticipantIn,
    ParticipantResponse,
    StaffSlotIn,
    StaffAssignmentIn,
    StaffSlotResponse,
    StaffAssignmentResponse,
    BidIn,
    BidResponse,
    KitNoteIn,
    GigKitAssignmentResponse,
    OrganizationRef,
    StatusHistoryResponse,
)
from .equipment import (
    AssetCreate,
    AssetUpdate,
    AssetResponse,
    KitAssetIn,
    KitAssetResponse,
    KitCreate,
    KitUpdate,
    KitResponse,
    KitConflict,
    GigKitAssignmentCreate,
)
from .places import PlaceSummary, PlaceSearchResponse, PlaceDetails
