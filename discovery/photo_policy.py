"""
Photo visibility and UI action flags

Precedence for photos: blocked > premium > like-required > fully visible.
"""
from typing import List, Optional

from discovery.config import Settings, settings as default_settings
from discovery.data_schemas import (
    ActionFlags, AlbumVisibility, InteractionState, PhotoAccess, PhotoReference,
    Profile, RestrictionReason,
)


def is_blocked(interaction: InteractionState) -> bool:
    return interaction.blocked


def can_like(interaction: InteractionState) -> bool:
    return not interaction.blocked and not interaction.liked and not interaction.matched


def can_chat(interaction: InteractionState) -> bool:
    return not interaction.blocked and interaction.matched


def can_view_profile(interaction: InteractionState) -> bool:
    return not interaction.blocked


def can_block(interaction: InteractionState) -> bool:
    return not interaction.blocked and not interaction.matched


def action_flags(interaction: InteractionState) -> ActionFlags:
    return ActionFlags(
        can_like=can_like(interaction),
        can_chat=can_chat(interaction),
        can_view_profile=can_view_profile(interaction),
        can_block=can_block(interaction),
        is_blocked=is_blocked(interaction),
    )


class PhotoAccessPolicy:
    """Decides per photo whether it is shown, blurred or withheld"""

    def __init__(self, config: Optional[Settings] = None):
        self.settings = config or default_settings

    def resolve(self, photo: PhotoReference, requester_is_premium: bool,
                interaction: InteractionState,
                album_visibility: AlbumVisibility = AlbumVisibility.LIKED_AND_PREMIUM) -> PhotoAccess:
        if is_blocked(interaction):
            return PhotoAccess(url=None, slot=photo.slot, visible=False, blurred=False,
                               restriction_reason=RestrictionReason.BLOCKED)

        if photo.is_primary or interaction.matched:
            return PhotoAccess(url=photo.url, slot=photo.slot, visible=True, blurred=False)

        if not requester_is_premium:
            reason = RestrictionReason.PREMIUM_ONLY
        elif album_visibility == AlbumVisibility.ONLY_LIKED:
            reason = RestrictionReason.LIKE_REQUIRED
        else:
            return PhotoAccess(url=photo.url, slot=photo.slot, visible=True, blurred=False)

        return PhotoAccess(url=self.settings.blurred_photo_url, slot=photo.slot, visible=False,
                           blurred=True, restriction_reason=reason)

    def resolve_profile(self, owner: Profile, requester_is_premium: bool,
                        interaction: InteractionState) -> List[PhotoAccess]:
        """Decisions for the primary photo and up to max_album_photos album photos"""
        references = owner.photo_references()[: 1 + self.settings.max_album_photos]
        return [
            self.resolve(ref, requester_is_premium, interaction, owner.album_visibility)
            for ref in references
        ]
