"""
Chat application.

Messaging and conversation state for workspaces:
- 1:1 conversations between members
- Channel and conversation messages with threads and call sessions
- Reactions, read watermarks and unread alerts
- Per-member drafts
- Cascading removal of channels, members and workspaces

Usage:
    from chat.services import MessageService, ReactionService, DraftService
    from chat.cascade import CascadeDeletionCoordinator, RetentionPolicy
"""
