"""
OpenAPI schema customizations for drf-spectacular.

Tag naming follows the pattern: [App Name] - [Group Name]
Examples:
- Workspaces (workspace lifecycle, join codes)
- Workspaces - Channels (channel CRUD, mark as read)
- Workspaces - Members (listing, role changes, leave/kick)
- Chat - Conversations (1:1 conversations)
- Chat - Messages (messages, threads, reactions)
- Chat - Drafts (per-member drafts)
"""

TAG_DESCRIPTIONS = {
    "Workspaces": (
        "Workspace lifecycle: create, join by code, rename, rotate the join "
        "code and delete with everything inside."
    ),
    "Workspaces - Channels": (
        "Named channels with per-member unread and call-activity flags."
    ),
    "Workspaces - Members": (
        "Workspace members, role changes and removal. Messages of removed "
        "members are kept."
    ),
    "Chat - Conversations": "1:1 conversations between two members of a workspace.",
    "Chat - Messages": (
        "Messages, thread replies, call sessions and reactions, with keyset "
        "cursor pagination."
    ),
    "Chat - Drafts": "Unsent text per member and addressing tuple.",
    "System": "Health checks and schema.",
}


def describe_tags(result, generator, request, public):
    """
    Postprocessing hook that adds descriptions to the tags used by views.

    Views set tags= in @extend_schema; untagged operations are grouped
    under "System".
    """
    used = set()
    for methods in result.get("paths", {}).values():
        for operation in methods.values():
            if not isinstance(operation, dict):
                continue
            tags = operation.get("tags") or []
            if not tags or tags == ["schema"] or tags == ["health"]:
                operation["tags"] = tags = ["System"]
            used.update(tags)

    result["tags"] = [
        {"name": name, "description": description}
        for name, description in TAG_DESCRIPTIONS.items()
        if name in used
    ]
    return result
