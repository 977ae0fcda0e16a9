"""
Standalone script to build the canonical slug index and report on it.
Can be run directly without Flask server.
"""
import sys
from collections import defaultdict
from pathlib import Path

# Add the project root to the path (scripts are in scripts/ subdirectory)
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from bookshop_directory.canonical_index import CanonicalIndex
from bookshop_directory.config import Config
from bookshop_directory.data_store import EntityStoreError, JsonFileEntityStore, create_entity_store
from bookshop_directory.slugs import slugify


def find_collisions(entities):
    """Group live entities by slug and keep the slugs shared by more than one entity."""
    by_slug = defaultdict(list)
    for entity in entities:
        slug = slugify(entity.name)
        if entity.live and slug:
            by_slug[slug].append(entity)
    return {slug: group for slug, group in by_slug.items() if len(group) > 1}


def main():
    """Build the index from the configured backend (or a JSON file) and print stats."""
    import argparse

    parser = argparse.ArgumentParser(description='Build the canonical slug index and report collisions')
    parser.add_argument('--file', '-f', type=str, help='JSON file of entity rows (default: configured backend)')
    parser.add_argument('--show-collisions', action='store_true', help='List every slug shared by several entities')

    args = parser.parse_args()

    if args.file:
        store = JsonFileEntityStore(args.file)
    else:
        store = create_entity_store({key: getattr(Config, key) for key in dir(Config) if key.isupper()})

    try:
        entities = store.list_entities()
    except EntityStoreError as e:
        print(f"Error: could not load entities: {e}")
        sys.exit(1)

    index = CanonicalIndex.build(entities)
    live_count = sum(1 for e in entities if e.live)
    empty_slugs = [e for e in entities if e.live and not slugify(e.name)]

    print(f"Entities loaded:     {len(entities)}")
    print(f"Live entities:       {live_count}")
    print(f"Indexed slugs:       {len(index)}")
    print(f"Slug collisions:     {index.collisions}")
    print(f"Names without slug:  {len(empty_slugs)}")

    if args.show_collisions:
        collisions = find_collisions(entities)
        if collisions:
            print()
            print("Shared slugs (last entity listed owns the slug):")
            for slug, group in sorted(collisions.items()):
                owners = ', '.join(f"{e.id} ({e.locality}, {e.region})" for e in group)
                print(f"  {slug}: {owners}")


if __name__ == '__main__':
    main()
