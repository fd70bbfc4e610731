# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Redirect-following decisions."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .classifier import redirect_method
from .errors import TooManyRedirectsError
from .http.models import RedirectChain, RequestDescriptor, ResponseRecord
from .http.url import is_absolute, resolve_location, same_origin

logger = logging.getLogger(__name__)

DEFAULT_MAX_REDIRECTS = 10


@dataclass(frozen=True)
class RedirectPlan:
    """Next hop of a redirect chain."""

    descriptor: RequestDescriptor
    chain: RedirectChain


class RedirectController:
    """
    Decide whether a response is followed and build the next hop.

    Only 301/302 (same method) and 303 (GET) are followed. Following is on
    unless disabled with an explicit ``False``, per request or per client.
    """

    def __init__(self, follow_redirects: bool | None = True, max_redirects: int = DEFAULT_MAX_REDIRECTS):
        self.follow_redirects = follow_redirects
        self.max_redirects = max(0, int(max_redirects))

    def start_chain(self, descriptor: RequestDescriptor) -> RedirectChain:
        return RedirectChain.start(descriptor, max_redirects=self.max_redirects)

    def should_follow(self, descriptor: RequestDescriptor) -> bool:
        flag = descriptor.follow_redirect if descriptor.follow_redirect is not None else self.follow_redirects
        return flag is not False

    def plan(self, descriptor: RequestDescriptor, response: ResponseRecord) -> RedirectPlan | None:
        """
        Return the follow-up hop for ``response``, or None when it ends the chain.

        Raises TooManyRedirectsError when following would exceed the chain's limit.
        """
        method = redirect_method(response.status_code, descriptor.method)
        if method is None:
            return None
        if not self.should_follow(descriptor):
            logger.debug("Redirect following disabled; not following %s from %s", response.status_code, descriptor.url)
            return None

        location = response.header("location")
        if not location:
            logger.warning("Redirect %s from %s has no Location header; not following", response.status_code, descriptor.url)
            return None

        chain = response.chain or self.start_chain(descriptor)
        if chain.redirect_count + 1 > chain.max_redirects:
            raise TooManyRedirectsError(chain)

        next_url = resolve_location(response.url or descriptor.url, location)
        if not is_absolute(next_url):
            logger.warning("Redirect %s from %s points to %r; not following", response.status_code, descriptor.url, location)
            return None
        if not same_origin(descriptor.url, next_url):
            logger.debug("Cross-origin redirect %s -> %s", descriptor.url, next_url)
        logger.debug("Following %s: %s %s -> %s %s", response.status_code, descriptor.method, descriptor.url, method, next_url)
        return RedirectPlan(descriptor=descriptor.redirected(next_url, method), chain=chain)


__all__ = ["DEFAULT_MAX_REDIRECTS", "RedirectController", "RedirectPlan"]
