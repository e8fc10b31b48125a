"""
Data schemas and validation for the discovery engine
"""
import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive timestamps are taken to be UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


_FEET_INCHES = re.compile(r"^\s*(\d+)\s*'\s*(\d+)?\s*(\"|'')?\s*$")
_CENTIMETERS = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(cm)?\s*$", re.IGNORECASE)


def parse_height_cm(value: Union[int, float, str, None]) -> Optional[int]:
    """Normalize a height given as centimeters or free text (5'8", 170 cm) to centimeters"""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return int(round(value))

    text = value.strip()
    if not text:
        return None

    match = _FEET_INCHES.match(text)
    if match:
        feet = int(match.group(1))
        inches = int(match.group(2) or 0)
        return int(round((feet * 12 + inches) * 2.54))

    match = _CENTIMETERS.match(text)
    if match:
        return int(round(float(match.group(1))))

    raise ValueError(f"unrecognized height: {value!r}")


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"

    @property
    def opposite(self) -> "Gender":
        return Gender.FEMALE if self == Gender.MALE else Gender.MALE


class MaritalStatus(str, Enum):
    SINGLE = "single"
    DIVORCED = "divorced"
    WIDOWED = "widowed"
    AWAITING_DIVORCE = "awaiting_divorce"


class EducationLevel(str, Enum):
    PHD = "phd"
    MASTERS = "masters"
    BACHELORS = "bachelors"
    DIPLOMA = "diploma"
    TWELFTH = "twelfth"
    TENTH = "tenth"
    NOT_SPECIFIED = "not_specified"

    @property
    def rank(self) -> int:
        return _EDUCATION_RANKS[self]

    @property
    def label(self) -> str:
        return _EDUCATION_LABELS[self]

    @classmethod
    def from_label(cls, label: Optional[str]) -> "EducationLevel":
        """Loose lookup by value, name or display label ("Masters/Post Graduate")"""
        if not label:
            return cls.NOT_SPECIFIED
        clean = label.strip().lower()
        for level in cls:
            if clean == level.value:
                return level
        for level in cls:
            if clean in level.label.lower() or clean in level.name.lower():
                return level
        return cls.NOT_SPECIFIED


_EDUCATION_RANKS = {
    EducationLevel.PHD: 7,
    EducationLevel.MASTERS: 6,
    EducationLevel.BACHELORS: 5,
    EducationLevel.DIPLOMA: 4,
    EducationLevel.TWELFTH: 3,
    EducationLevel.TENTH: 2,
    EducationLevel.NOT_SPECIFIED: 0,
}

_EDUCATION_LABELS = {
    EducationLevel.PHD: "PhD/Doctorate",
    EducationLevel.MASTERS: "Masters/Post Graduate",
    EducationLevel.BACHELORS: "Bachelors/Graduate",
    EducationLevel.DIPLOMA: "Diploma",
    EducationLevel.TWELFTH: "12th/Intermediate",
    EducationLevel.TENTH: "10th/Matriculation",
    EducationLevel.NOT_SPECIFIED: "Not Specified",
}


class HabitPreference(str, Enum):
    """Partner preference for drinking / smoking"""
    ACCEPT = "accept"
    REJECT = "reject"
    NO_PREFERENCE = "no_preference"


class AlbumVisibility(str, Enum):
    """Owner setting for photos beyond the primary one"""
    LIKED_AND_PREMIUM = "liked_and_premium"
    ONLY_LIKED = "only_liked"


class CategoryBucket(str, Enum):
    NEW = "new"
    TODAY = "today"
    MINE = "mine"
    NEAR = "near"
    MORE = "more"


class SortKey(str, Enum):
    COMPATIBILITY = "compatibility"
    RECENT = "recent"
    DISTANCE = "distance"
    AGE = "age"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class RestrictionReason(str, Enum):
    NONE = "NONE"
    PREMIUM_ONLY = "PREMIUM_ONLY"
    LIKE_REQUIRED = "LIKE_REQUIRED"
    BLOCKED = "BLOCKED"


class LocationTier(str, Enum):
    CITY = "city"
    STATE = "state"
    COUNTRY = "country"


class PhotoReference(BaseModel):
    """A photo slot on a profile; slot 1 is the primary photo"""
    model_config = ConfigDict(frozen=True)

    url: str
    slot: int = Field(..., ge=1)

    @property
    def is_primary(self) -> bool:
        return self.slot == 1


class Profile(BaseModel):
    """A member profile, either the requester or a candidate"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="opaque profile id")
    full_name: Optional[str] = None
    gender: Optional[Gender] = None
    date_of_birth: Optional[date] = None
    height_cm: Optional[int] = Field(None, description="canonical height in centimeters")
    marital_status: Optional[MaritalStatus] = None

    religion: Optional[str] = None
    caste: Optional[str] = None
    mother_tongue: Optional[str] = None

    diet: Optional[str] = None
    drinking_habit: Optional[str] = None
    smoking_habit: Optional[str] = None
    hobbies: List[str] = Field(default_factory=list)

    education_level: Optional[EducationLevel] = None
    occupation: Optional[str] = None
    annual_income: Optional[float] = Field(None, ge=0)

    country: Optional[str] = None
    state: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    is_verified: bool = False
    is_premium: bool = False
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None

    photos: List[str] = Field(default_factory=list, description="photo urls, primary first")
    album_visibility: AlbumVisibility = AlbumVisibility.LIKED_AND_PREMIUM

    @field_validator("height_cm", mode="before")
    @classmethod
    def normalize_height(cls, v):
        return parse_height_cm(v)

    @field_validator("education_level", mode="before")
    @classmethod
    def normalize_education(cls, v):
        if isinstance(v, str):
            return EducationLevel.from_label(v)
        return v

    @field_validator("last_active", "created_at")
    @classmethod
    def normalize_timestamps(cls, v):
        return as_utc(v)

    def age_on(self, day: date) -> Optional[int]:
        """Age in whole years on the given day"""
        if self.date_of_birth is None:
            return None
        dob = self.date_of_birth
        return day.year - dob.year - ((day.month, day.day) < (dob.month, dob.day))

    @property
    def coordinates(self):
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    def photo_references(self) -> List[PhotoReference]:
        urls = [url for url in self.photos if url]
        return [PhotoReference(url=url, slot=i + 1) for i, url in enumerate(urls)]


class Preference(BaseModel):
    """Partner preference of the requester"""
    model_config = ConfigDict(frozen=True)

    profile_id: str
    min_age: Optional[int] = Field(None, ge=18, le=120)
    max_age: Optional[int] = Field(None, ge=18, le=120)
    min_height_cm: Optional[int] = None
    max_height_cm: Optional[int] = None
    min_income: Optional[float] = Field(None, ge=0)
    max_income: Optional[float] = Field(None, ge=0)

    religions: List[str] = Field(default_factory=list)
    castes: List[str] = Field(default_factory=list)
    mother_tongues: List[str] = Field(default_factory=list)
    marital_statuses: List[MaritalStatus] = Field(default_factory=list)
    cities: List[str] = Field(default_factory=list)
    states: List[str] = Field(default_factory=list)
    min_education_level: Optional[EducationLevel] = None

    diet: Optional[str] = None
    drinking: Optional[HabitPreference] = None
    smoking: Optional[HabitPreference] = None

    verified_only: bool = False
    auto_match_enabled: bool = True
    match_score_threshold: int = Field(0, ge=0, le=100)

    @field_validator("min_height_cm", "max_height_cm", mode="before")
    @classmethod
    def normalize_height(cls, v):
        return parse_height_cm(v)

    @field_validator("min_education_level", mode="before")
    @classmethod
    def normalize_education(cls, v):
        if isinstance(v, str):
            return EducationLevel.from_label(v)
        return v


class InteractionState(BaseModel):
    """Requester/candidate interaction flags, read-only for the engine"""
    model_config = ConfigDict(frozen=True)

    liked: bool = False
    liked_by_candidate: bool = False
    viewed: bool = False
    matched: bool = False
    blocked: bool = False
    has_conversation: bool = False
    matched_at: Optional[datetime] = None

    @field_validator("matched_at")
    @classmethod
    def normalize_matched_at(cls, v):
        return as_utc(v)

    @property
    def is_mutual_like(self) -> bool:
        return self.matched or (self.liked and self.liked_by_candidate)


class PoolEntry(BaseModel):
    """A candidate profile together with its interaction state"""
    model_config = ConfigDict(frozen=True)

    profile: Profile
    interaction: InteractionState = Field(default_factory=InteractionState)


class FilterCriteria(BaseModel):
    """Request-scoped filters, sorting and pagination"""
    model_config = ConfigDict(frozen=True)

    # ranges
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    min_height_cm: Optional[int] = None
    max_height_cm: Optional[int] = None
    min_income: Optional[float] = None
    max_income: Optional[float] = None

    # equality
    city: Optional[str] = None
    education_level: Optional[str] = None
    occupation: Optional[str] = None
    marital_status: Optional[str] = None
    max_distance_km: Optional[float] = None

    # preference overrides
    preferred_gender: Optional[Gender] = None
    preferred_religion: Optional[str] = None
    preferred_caste: Optional[str] = None
    preferred_mother_tongue: Optional[str] = None

    # toggles
    only_verified: bool = False
    only_with_photos: bool = False
    only_online: bool = False
    exclude_already_liked: bool = False
    exclude_viewed: bool = False
    exclude_matched: bool = False
    exclude_blocked: bool = True

    # listing
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    category: Optional[str] = None
    page: int = 0
    size: Optional[int] = None

    @field_validator("min_height_cm", "max_height_cm", mode="before")
    @classmethod
    def normalize_height(cls, v):
        return parse_height_cm(v)


class ScoreResult(BaseModel):
    """Compatibility score with its per-criterion breakdown"""
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    breakdown: Dict[str, bool]
    reasons: List[str] = Field(default_factory=list)

    @property
    def percentage(self) -> str:
        return f"{self.score}%"

    @property
    def is_premium_match(self) -> bool:
        return self.score >= 80

    @property
    def match_reason(self) -> str:
        if not self.reasons:
            return "Basic compatibility found"
        return ", ".join(self.reasons[:3])


class PhotoAccess(BaseModel):
    """Visibility decision for one photo"""
    model_config = ConfigDict(frozen=True)

    url: Optional[str] = None
    slot: int
    visible: bool
    blurred: bool
    restriction_reason: RestrictionReason = RestrictionReason.NONE

    @property
    def withheld(self) -> bool:
        return self.url is None


class ActionFlags(BaseModel):
    """UI action flags for one candidate"""
    model_config = ConfigDict(frozen=True)

    can_like: bool
    can_chat: bool
    can_view_profile: bool
    can_block: bool
    is_blocked: bool


class MatchResult(BaseModel):
    """One candidate in a discovery listing"""
    model_config = ConfigDict(frozen=True)

    candidate_id: str
    full_name: Optional[str] = None
    gender: Optional[Gender] = None
    age: Optional[int] = None
    height_cm: Optional[int] = None
    city: Optional[str] = None
    occupation: Optional[str] = None
    education_level: Optional[EducationLevel] = None
    religion: Optional[str] = None
    caste: Optional[str] = None

    compatibility_score: int = Field(..., ge=0, le=100)
    compatibility_percentage: str
    breakdown: Dict[str, bool] = Field(default_factory=dict)
    match_reason: str = ""
    common_interests: List[str] = Field(default_factory=list)
    is_premium_match: bool = False

    categories: List[CategoryBucket] = Field(default_factory=list)
    distance_km: Optional[float] = None
    distance_text: Optional[str] = None

    primary_photo: Optional[PhotoAccess] = None
    photos: List[PhotoAccess] = Field(default_factory=list)
    actions: ActionFlags

    is_liked: bool = False
    is_matched: bool = False
    is_viewed: bool = False
    is_online: bool = False
    is_recently_active: bool = False
    is_verified: bool = False
    is_premium: bool = False
    is_new_today: bool = False

    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None
    matched_at: Optional[datetime] = None


class MatchListResponse(BaseModel):
    """A sorted, paginated discovery listing"""
    model_config = ConfigDict(frozen=True)

    category: str
    title: str
    total_count: int
    matches: List[MatchResult]
    page: int
    size: int
    total_pages: int
    has_next: bool
    has_previous: bool
    skipped: int = 0


class MatchStatsResponse(BaseModel):
    """Per-bucket counts for dashboards"""
    model_config = ConfigDict(frozen=True)

    new_matches: int
    todays_matches: int
    my_matches: int
    near_me_matches: int
    more_matches: int
    total_matches: int
    unviewed_matches: int
    mutual_likes: int
    last_updated: datetime


class MatchCategorySummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    slug: str
    name: str
    count: int
