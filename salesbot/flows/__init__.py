from salesbot.flows.offers import OfferPresenter
from salesbot.flows.post_selection import PostSelectionFlow
from salesbot.flows.router import ConversationRouter, RouteResult

__all__ = [
    "ConversationRouter",
    "RouteResult",
    "OfferPresenter",
    "PostSelectionFlow",
]
