"""
Application routes.

Page rendering lives elsewhere; these handlers return JSON and are mainly
the places where canonical URLs are enforced after a data lookup.
"""
import hmac
import logging

from flask import Blueprint, abort, current_app, jsonify, redirect, request

from bookshop_directory.canonical_index import lookup
from bookshop_directory.forms import DirectoryFilterForm
from bookshop_directory.regions import normalize_region
from bookshop_directory.refresh_job import REFRESHED, THROTTLED
from bookshop_directory.resolver import is_numeric_token, resolve
from bookshop_directory.slugs import canonical_entity_path, slugify

logger = logging.getLogger(__name__)

bp = Blueprint('main', __name__)


def get_locator():
    """Locator services registered on the current app by create_app()."""
    return current_app.extensions['canonical_locator']


def _current_index():
    return get_locator().index_provider()


def _entity_payload(entity, slug):
    payload = entity.to_dict()
    payload['slug'] = slug
    payload['canonical_url'] = canonical_entity_path(current_app.config['ENTITY_KIND'], entity.name)
    return payload


def entity_detail(token):
    """
    Entity detail handler for /<ENTITY_KIND>/<token>.

    Numeric tokens are legacy ids: look the entity up and 301 to its slug URL.
    Slug tokens are looked up in the canonical index, or by scanning the data
    store while the index is not built yet.
    """
    locator = get_locator()
    store = locator.store

    if is_numeric_token(token):
        entity = store.get_entity_by_id(int(token))
        if entity is None or not entity.live:
            logger.info(f"No live entity for legacy id {token}")
            abort(404)
        location = canonical_entity_path(current_app.config['ENTITY_KIND'], entity.name)
        if not location:
            logger.warning(f"Entity {entity.id} has no slug-able name: {entity.name!r}")
            abort(404)
        logger.info(f"Redirect (legacy id): /{current_app.config['ENTITY_KIND']}/{token} -> {location}")
        return redirect(location, code=301)

    index = _current_index()
    if index is None:
        # Index not ready: fall back to live data-store resolution.
        entity = store.find_live_by_slug(token)
    else:
        entity_id = lookup(index, token)
        entity = store.get_entity_by_id(entity_id) if entity_id is not None else None

    if entity is None or not entity.live:
        abort(404)

    return jsonify(_entity_payload(entity, token))


def directory():
    """Unified listing page: live entities filtered by state, city, county and features."""
    form = DirectoryFilterForm(formdata=request.args)
    if not form.validate():
        return jsonify({'error': 'Invalid filter parameters', 'fields': form.errors}), 400

    state = normalize_region(form.state.data) if form.state.data else None
    city = form.city.data.strip().lower() if form.city.data else None
    county = form.county.data.strip().lower() if form.county.data else None
    feature_ids = set(form.feature_ids())

    results = []
    for entity in get_locator().store.list_entities():
        if not entity.live:
            continue
        if state and normalize_region(entity.region) != state:
            continue
        if city and entity.locality.strip().lower() != city:
            continue
        if county and (entity.county or '').strip().lower() != county:
            continue
        if feature_ids and not feature_ids.issubset(entity.feature_ids):
            continue
        results.append(_entity_payload(entity, slugify(entity.name)))

    return jsonify({
        'filters': {
            'state': state,
            'city': form.city.data or None,
            'county': form.county.data or None,
            'features': sorted(feature_ids),
        },
        'count': len(results),
        'results': results,
    })


@bp.route('/api/locator/status')
def locator_status():
    """Canonical index status for monitoring."""
    return jsonify(get_locator().manager.status())


@bp.route('/api/locator/resolve/<path:token>')
def locator_resolve(token):
    """Show how a path token resolves against the current index."""
    resolution = resolve(_current_index(), token)
    if resolution is None:
        return jsonify({'token': token, 'resolved': False}), 404
    return jsonify({
        'token': token,
        'resolved': True,
        'entity_id': resolution.entity_id,
        'matched_slug': resolution.matched_slug,
        'match': resolution.match,
    })


@bp.route('/api/locator/refresh', methods=['POST'])
def locator_refresh():
    """
    Rebuild the canonical index now (admin only).

    Password can be in the query string or form data.
    """
    expected = current_app.config.get('ADMIN_REFRESH_PASSWORD')
    if not expected:
        return jsonify({'error': 'Index refresh is not enabled'}), 503

    provided = request.args.get('password') or request.form.get('password') or ''
    if not hmac.compare_digest(provided.encode('utf-8'), expected.encode('utf-8')):
        logger.warning("Rejected index refresh with invalid password")
        return jsonify({'error': 'Invalid password'}), 403

    outcome = get_locator().refresh_job.manual_refresh()
    if outcome == THROTTLED:
        return jsonify({'error': 'Index was refreshed recently, try again later'}), 429
    if outcome != REFRESHED:
        return jsonify({'error': 'Index refresh failed', 'status': get_locator().manager.status()}), 500

    return jsonify({'success': True, 'status': get_locator().manager.status()})


def register_locator_routes(app):
    """Mount the listing and detail handlers on the configured paths ('/directory', '/listing/<token>')."""
    listing_path = '/' + app.config['LISTING_PATH'].strip('/')
    kind = app.config['ENTITY_KIND'].strip('/')
    app.add_url_rule(listing_path, endpoint='directory', view_func=directory)
    app.add_url_rule(f'/{kind}/<token>', endpoint='entity_detail', view_func=entity_detail)
