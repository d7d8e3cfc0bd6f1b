from .catalog import (
    fetch_global_items as _fetch_global_items,
    fetch_public_lists as _fetch_public_lists,
    fetch_trending_lists as _fetch_trending_lists,
    search_lists as _search_lists,
)
from .core import (
    clone_list as _clone_list,
    create_list as _create_list,
    delete_list as _delete_list,
    fetch_list as _fetch_list,
    fetch_user_lists as _fetch_user_lists,
    is_shadow_list as _is_shadow_list,
    update_list as _update_list,
)
from .following import (
    follow_list as _follow_list,
    is_following_list as _is_following_list,
    unfollow_list as _unfollow_list,
)
from .items import (
    add_item as _add_item,
    delete_item as _delete_item,
    toggle_item_completion as _toggle_item_completion,
    update_item as _update_item,
)


class ListService:
    """Service class for bucket lists, their items and list follows."""

    fetch_user_lists = staticmethod(_fetch_user_lists)
    fetch_list = staticmethod(_fetch_list)
    fetch_public_lists = staticmethod(_fetch_public_lists)
    search_lists = staticmethod(_search_lists)
    fetch_trending_lists = staticmethod(_fetch_trending_lists)
    fetch_global_items = staticmethod(_fetch_global_items)
    create_list = staticmethod(_create_list)
    update_list = staticmethod(_update_list)
    delete_list = staticmethod(_delete_list)
    clone_list = staticmethod(_clone_list)
    is_shadow_list = staticmethod(_is_shadow_list)
    follow_list = staticmethod(_follow_list)
    unfollow_list = staticmethod(_unfollow_list)
    is_following_list = staticmethod(_is_following_list)
    add_item = staticmethod(_add_item)
    update_item = staticmethod(_update_item)
    delete_item = staticmethod(_delete_item)
    toggle_item_completion = staticmethod(_toggle_item_completion)
