"""
Celery tasks for chat app.

This module defines async tasks for:
- Delivering message documents to the full-text index
- Removing deleted messages from the full-text index

Tasks are enqueued by chat.search_index after the writing transaction
commits. They are not retried automatically; a failed delivery is logged
and surfaces in the worker.

Usage:
    from chat.search_index import schedule_index

    schedule_index(message, author_name="Ada")
"""

import logging

from celery import shared_task

from chat.search_index import get_search_index

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True)
def index_message(document: dict) -> None:
    """
    Deliver a message document to the search index.

    Args:
        document: Output of chat.search_index.build_document
    """
    logger.debug(f"Delivering message {document['id']} to search index")
    get_search_index().index(document)


@shared_task(ignore_result=True)
def unindex_message(message_id: str) -> None:
    """
    Remove a message from the search index.

    Args:
        message_id: String id of the deleted message
    """
    logger.debug(f"Removing message {message_id} from search index")
    get_search_index().remove(message_id)
