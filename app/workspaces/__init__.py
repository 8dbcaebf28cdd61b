"""
Workspaces application.

Workspaces are the root of all team-chat data: members (a user's identity
inside one workspace, carrying a role) and channels hang off them, and every
conversation, message, reaction, read marker and draft in the chat app is
scoped to exactly one workspace.

Usage:
    from workspaces.models import Workspace, Member, Channel
    from workspaces.authorization import MembershipResolver
    from workspaces.services import WorkspaceService, ChannelService, MemberService
"""
