from __future__ import annotations

import logging
from typing import Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from apothecary.models import NewsletterSubscriber
from apothecary.observability import increment_counter, record_event
from apothecary.schemas import NewsletterSubscribeInput


class NewsletterService:
    """Newsletter sign-ups keyed by lower-cased email."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session
        self.logger = logging.getLogger(__name__)

    def subscribe(self, payload: NewsletterSubscribeInput) -> Tuple[NewsletterSubscriber, bool]:
        """
        Create or refresh a subscription.

        Returns the subscriber and whether this call started the subscription;
        False means the address was already subscribed.
        """
        subscriber = (
            self.db.query(NewsletterSubscriber)
            .filter(NewsletterSubscriber.email == payload.email)
            .first()
        )
        if subscriber is None:
            subscriber = NewsletterSubscriber(email=payload.email, subscribed=False, tags=[])
            self.db.add(subscriber)

        started = not subscriber.subscribed
        subscriber.subscribed = True
        if payload.name:
            subscriber.name = payload.name
        if payload.tags:
            subscriber.tags = list(dict.fromkeys([*(subscriber.tags or []), *payload.tags]))
        try:
            self.db.commit()
        except IntegrityError:
            # A concurrent sign-up inserted the same address first
            self.db.rollback()
            existing = self.db.query(NewsletterSubscriber).filter(NewsletterSubscriber.email == payload.email).one()
            return existing, False

        if started:
            increment_counter("newsletter_subscriptions_total")
            record_event("newsletter_subscribed", {"subscriber_id": subscriber.subscriberID})
            self.logger.info("Newsletter subscription %s started", subscriber.subscriberID)
        return subscriber, started
