"""
301 redirects from legacy URL shapes to canonical URLs.

The engine is an ordered table of (pattern -> target) rules evaluated top to
bottom; the first pattern that matches decides, so a response carries at most
one redirect. Listing-page shapes are rewritten statically. Entity detail
paths consult the locator resolver, except purely numeric ids which are left
for the detail handler (it needs a data lookup to find the current slug).

Canonical targets are fixed points: deciding on a target never redirects again.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional
from urllib.parse import urlencode, urlsplit

from flask import redirect, request

from bookshop_directory.regions import normalize_region
from bookshop_directory.resolver import is_numeric_token, resolve
from bookshop_directory.slugs import place_name_from_slug

logger = logging.getLogger(__name__)

_EXTENSION_RE = re.compile(r"\.[A-Za-z0-9]+$")
_FEATURE_IDS_RE = re.compile(r"[0-9]+(?:,[0-9]+)*")
_COUNTY_SUFFIX_RE = re.compile(r"\s+County$", re.IGNORECASE)

_BARE_LISTING_PAGES = (
    'browse', 'states', 'cities', 'counties', 'categories',
    'state', 'city', 'county', 'category',
)


@dataclass(frozen=True)
class RedirectDecision:
    """Either pass-through (location is None) or one redirect to `location`."""
    location: Optional[str] = None
    status: int = 301
    rule: Optional[str] = None

    @property
    def is_redirect(self) -> bool:
        return self.location is not None


PASS_THROUGH = RedirectDecision()


@dataclass(frozen=True)
class RedirectRule:
    """
    One legacy URL shape.

    `target` receives the regex match and returns the canonical location, or
    None to let the request through unchanged. Either way no later rule runs.
    """
    name: str
    pattern: re.Pattern
    target: Callable[[re.Match], Optional[str]]


class RedirectEngine:
    """Decides whether an inbound request should be redirected to its canonical URL."""

    def __init__(self,
                 index_provider: Optional[Callable] = None,
                 entity_kind: str = 'listing',
                 legacy_entity_kinds: Iterable[str] = ('bookstore', 'bookshop'),
                 listing_path: str = '/directory',
                 api_prefix: str = '/api/',
                 static_aliases: Optional[dict] = None):
        """
        Args:
            index_provider: Zero-argument callable returning the current
                CanonicalIndex (or None while it is not built)
            entity_kind: Path prefix of canonical entity URLs ('/listing/<slug>')
            legacy_entity_kinds: Older entity prefixes that map onto entity_kind
            listing_path: Unified listing page all listing shapes collapse to
            api_prefix: Requests under this prefix are never redirected
            static_aliases: Exact path -> canonical path redirects

        Raises:
            ValueError: If an alias target is itself an alias source (redirect loop)
        """
        self._index_provider = index_provider or (lambda: None)
        self.entity_kind = entity_kind.strip('/')
        self.legacy_entity_kinds = tuple(k.strip('/') for k in legacy_entity_kinds
                                         if k and k.strip('/') != self.entity_kind)
        self.listing_path = '/' + listing_path.strip('/')
        self.api_prefix = api_prefix
        self.static_aliases = dict(static_aliases or {})

        for source, target in self.static_aliases.items():
            if target in self.static_aliases:
                raise ValueError(f"Static alias {source} -> {target} would chain into another alias")

        self.rules = self._build_rules()

    @classmethod
    def from_config(cls, config, index_provider=None) -> "RedirectEngine":
        """Create an engine from a Flask config mapping."""
        return cls(
            index_provider=index_provider,
            entity_kind=config.get('ENTITY_KIND', 'listing'),
            legacy_entity_kinds=config.get('LEGACY_ENTITY_KINDS', ('bookstore', 'bookshop')),
            listing_path=config.get('LISTING_PATH', '/directory'),
            api_prefix=config.get('API_PREFIX', '/api/'),
            static_aliases=config.get('STATIC_ALIASES', {}),
        )

    # ------------------------------------------------------------------
    # Rule table
    # ------------------------------------------------------------------

    def _build_rules(self):
        listing = re.escape(self.listing_path)
        kind = re.escape(self.entity_kind)
        bare = '|'.join(_BARE_LISTING_PAGES)

        rules = [
            RedirectRule('bare-listing', re.compile(rf"{listing}/(?:{bare})"), self._to_listing),
            RedirectRule('state', re.compile(rf"{listing}/state/(?P<region>[^/]+)"), self._state),
            RedirectRule('city-in-state', re.compile(rf"{listing}/city/(?P<region>[^/]+)/(?P<place>[^/]+)"), self._city_in_state),
            RedirectRule('city', re.compile(rf"{listing}/city/(?P<place>[^/]+)"), self._city),
            RedirectRule('city-state', re.compile(rf"{listing}/city-state/(?P<combined>[^/]+)"), self._city_state),
            RedirectRule('county-in-state', re.compile(rf"{listing}/county/(?P<region>[^/]+)/(?P<place>[^/]+)"), self._county_in_state),
            RedirectRule('county-state', re.compile(rf"{listing}/county-state/(?P<combined>[^/]+)"), self._county_state),
            RedirectRule('category', re.compile(rf"{listing}/category/(?P<features>[^/]+)"), self._category),
            RedirectRule('legacy-category', re.compile(r"/category/(?P<features>[0-9]+)"), self._category),
            RedirectRule('legacy-state', re.compile(r"/state/(?P<region>[^/]+)"), self._state),
        ]

        if self.legacy_entity_kinds:
            legacy = '|'.join(re.escape(k) for k in self.legacy_entity_kinds)
            rules.append(RedirectRule('legacy-entity', re.compile(rf"/(?:{legacy})/(?P<token>[^/]+)"), self._legacy_entity))

        rules.extend([
            RedirectRule('entity-numeric', re.compile(rf"/{kind}/(?P<token>[0-9]+)"), self._pass),
            RedirectRule('entity-slug', re.compile(rf"/{kind}/(?P<token>[^/]+)"), self._entity_slug),
        ])

        if self.static_aliases:
            aliases = '|'.join(re.escape(p) for p in self.static_aliases)
            rules.append(RedirectRule('static-alias', re.compile(rf"(?P<alias>{aliases})"), self._alias))

        return rules

    def listing_url(self, state=None, city=None, county=None, features=None) -> str:
        """Canonical unified listing URL with parameters in a fixed order."""
        params = [(key, value) for key, value in (
            ('state', state), ('city', city), ('county', county), ('features', features)
        ) if value]
        if not params:
            return self.listing_path
        return f"{self.listing_path}?{urlencode(params, safe=',')}"

    def entity_url(self, slug: str) -> str:
        return f"/{self.entity_kind}/{slug}"

    # ------------------------------------------------------------------
    # Rule targets
    # ------------------------------------------------------------------

    def _pass(self, match):
        return None

    def _to_listing(self, match):
        return self.listing_path

    def _state(self, match):
        return self.listing_url(state=normalize_region(match.group('region')))

    def _city_in_state(self, match):
        return self.listing_url(
            state=normalize_region(match.group('region')),
            city=place_name_from_slug(match.group('place')),
        )

    def _city(self, match):
        return self.listing_url(city=place_name_from_slug(match.group('place')))

    def _county_in_state(self, match):
        return self.listing_url(
            state=normalize_region(match.group('region')),
            county=_county_name(match.group('place')),
        )

    def _city_state(self, match):
        split = _split_place_region(match.group('combined'))
        if split is None:
            return self.listing_path
        place, region = split
        return self.listing_url(state=normalize_region(region), city=place_name_from_slug(place))

    def _county_state(self, match):
        split = _split_place_region(match.group('combined'))
        if split is None:
            return self.listing_path
        place, region = split
        return self.listing_url(state=normalize_region(region), county=_county_name(place))

    def _category(self, match):
        features = match.group('features')
        if not _FEATURE_IDS_RE.fullmatch(features):
            return self.listing_path
        return self.listing_url(features=features)

    def _alias(self, match):
        return self.static_aliases.get(match.group('alias'))

    def _legacy_entity(self, match):
        token = match.group('token')
        if is_numeric_token(token):
            # Detail handler turns the id into the slug on the next hop.
            return self.entity_url(token)
        matched_slug = self._resolve_slug(token)
        return self.entity_url(matched_slug or token)

    def _entity_slug(self, match):
        token = match.group('token')
        matched_slug = self._resolve_slug(token)
        if matched_slug is None or matched_slug == token:
            return None
        return self.entity_url(matched_slug)

    def _resolve_slug(self, token: str) -> Optional[str]:
        """Canonical slug for a non-numeric token, or None when it does not resolve."""
        try:
            index = self._index_provider()
            resolution = resolve(index, token)
            if resolution is None and token != token.lower():
                resolution = resolve(index, token.lower())
        except Exception as e:
            logger.error(f"Error resolving entity token '{token}': {e}", exc_info=True)
            return None
        if resolution is None or resolution.is_numeric:
            return None
        return resolution.matched_slug

    # ------------------------------------------------------------------
    # Decision
    # ------------------------------------------------------------------

    def is_exempt(self, method: str, path: str) -> bool:
        """API calls, assets and non-GET requests are never redirected."""
        if not method or method.upper() != 'GET':
            return True
        if self.api_prefix and path.startswith(self.api_prefix):
            return True
        last_segment = path.rsplit('/', 1)[-1]
        return bool(_EXTENSION_RE.search(last_segment))

    def decide(self, method: str, path: str) -> RedirectDecision:
        """
        Decide the canonical redirect for a request.

        Args:
            method: HTTP method
            path: Request path (already percent-decoded, as the framework
                provides it); a query string, if present, is ignored

        Returns:
            RedirectDecision: PASS_THROUGH or a single 301 redirect
        """
        if not isinstance(path, str) or not path:
            return PASS_THROUGH
        try:
            path = urlsplit(path).path
        except ValueError:
            return PASS_THROUGH

        if self.is_exempt(method, path):
            return PASS_THROUGH

        for rule in self.rules:
            match = rule.pattern.fullmatch(path)
            if match is None:
                continue
            try:
                location = rule.target(match)
            except Exception as e:
                logger.error(f"Redirect rule {rule.name} failed for {path}: {e}", exc_info=True)
                return PASS_THROUGH
            if location is None or location == path:
                return PASS_THROUGH
            logger.info(f"Redirect ({rule.name}): {path} -> {location}")
            return RedirectDecision(location=location, rule=rule.name)

        return PASS_THROUGH


def _split_place_region(combined: str):
    """
    Split 'los-angeles-ca' into ('los-angeles', 'ca').

    The last hyphen-delimited segment is taken as the region. This is a
    heuristic: place names that end in a word which is also a region token are
    not disambiguated.
    """
    parts = combined.split('-')
    if len(parts) < 2:
        return None
    region = parts[-1]
    place = '-'.join(parts[:-1]).strip('-')
    if not region or not place:
        return None
    return place, region


def _county_name(slug: str) -> str:
    return _COUNTY_SUFFIX_RE.sub('', place_name_from_slug(slug))


def register_redirect_hook(app, engine: RedirectEngine):
    """Run the engine before every request and short-circuit with a 301 when it says so."""

    @app.before_request
    def canonical_redirect():
        decision = engine.decide(request.method, request.path)
        if decision.is_redirect:
            return redirect(decision.location, code=decision.status)
        return None

    return canonical_redirect
