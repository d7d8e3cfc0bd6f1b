from .export import export_user_data as _export_user_data
from .follows import (
    follow_user as _follow_user,
    get_user_follower_counts as _get_user_follower_counts,
    get_user_followers as _get_user_followers,
    get_user_following as _get_user_following,
    is_following_user as _is_following_user,
    unfollow_user as _unfollow_user,
)
from .profile import (
    check_username_availability as _check_username_availability,
    fetch_profile_by_username as _fetch_profile_by_username,
    fetch_user_profile as _fetch_user_profile,
    new_profile as _new_profile,
    subscribe_to_profile_updates as _subscribe_to_profile_updates,
    update_user_profile as _update_user_profile,
    upload_profile_avatar as _upload_profile_avatar,
)
from .stats import (
    calculate_profile_stats as _calculate_profile_stats,
    update_follow_counts as _update_follow_counts,
    update_profile_stats as _update_profile_stats,
)


class UserService:
    """Service class for profiles, user follows and profile statistics."""

    new_profile = staticmethod(_new_profile)
    fetch_user_profile = staticmethod(_fetch_user_profile)
    fetch_profile_by_username = staticmethod(_fetch_profile_by_username)
    check_username_availability = staticmethod(_check_username_availability)
    update_user_profile = staticmethod(_update_user_profile)
    upload_profile_avatar = staticmethod(_upload_profile_avatar)
    subscribe_to_profile_updates = staticmethod(_subscribe_to_profile_updates)
    calculate_profile_stats = staticmethod(_calculate_profile_stats)
    update_profile_stats = staticmethod(_update_profile_stats)
    update_follow_counts = staticmethod(_update_follow_counts)
    follow_user = staticmethod(_follow_user)
    unfollow_user = staticmethod(_unfollow_user)
    is_following_user = staticmethod(_is_following_user)
    get_user_followers = staticmethod(_get_user_followers)
    get_user_following = staticmethod(_get_user_following)
    get_user_follower_counts = staticmethod(_get_user_follower_counts)
    export_user_data = staticmethod(_export_user_data)
