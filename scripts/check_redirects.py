"""
Print the canonical redirect decision for each path given on the command line.

Example:
    python scripts/check_redirects.py --file data/bookstores.json \
        /directory/state/california /listing/powells-books-portland /listing/42
"""
import sys
from pathlib import Path

# Add the project root to the path (scripts are in scripts/ subdirectory)
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bookshop_directory.canonical_index import CanonicalIndex
from bookshop_directory.config import Config
from bookshop_directory.data_store import EntityStoreError, JsonFileEntityStore
from bookshop_directory.redirects import RedirectEngine


def main():
    """Build an index from a JSON export and run each path through the redirect engine."""
    import argparse

    parser = argparse.ArgumentParser(description='Show the 301 redirect decision for request paths')
    parser.add_argument('paths', nargs='+', help='Request paths, e.g. /directory/state/california')
    parser.add_argument('--file', '-f', type=str, default=Config.ENTITIES_FILE,
                        help='JSON file of entity rows (default: from config)')
    parser.add_argument('--method', '-m', type=str, default='GET', help='HTTP method (default: GET)')

    args = parser.parse_args()

    index = None
    try:
        index = CanonicalIndex.build(JsonFileEntityStore(args.file).list_entities())
    except EntityStoreError as e:
        print(f"Warning: no index ({e}); entity paths will not resolve")

    engine = RedirectEngine(
        index_provider=lambda: index,
        entity_kind=Config.ENTITY_KIND,
        legacy_entity_kinds=Config.LEGACY_ENTITY_KINDS,
        listing_path=Config.LISTING_PATH,
        api_prefix=Config.API_PREFIX,
        static_aliases=Config.STATIC_ALIASES,
    )

    for path in args.paths:
        decision = engine.decide(args.method, path)
        if decision.is_redirect:
            print(f"{path} -> {decision.status} {decision.location} [{decision.rule}]")
        else:
            print(f"{path} -> pass through")


if __name__ == '__main__':
    main()
