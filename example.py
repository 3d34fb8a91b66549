"""Example usage of the json_tables library."""

from pathlib import Path
from json_tables import JsonStorage, StorageConfig

# Create a data directory for storage
data_dir = Path("./example_data")

storage = JsonStorage(StorageConfig(path=data_dir, debug=True))
storage.add_schema("Author", {"properties": {"name": {"type": "string"}}})
storage.add_schema("Book", {
    "properties": {
        "title": {"type": "string"},
        "year": {"type": "integer"},
        "author": {"$ref": "/Author"},
    },
})

books = [
    {"title": "Dune", "year": 1965, "author": {"name": "Frank Herbert"}},
    {"title": "Hyperion", "year": 1989, "author": {"name": "Dan Simmons"}},
    {"title": "The Fall of Hyperion", "year": 1990, "author": 2},
]

print("Saving books (authors are saved along with them)...")
for book in books:
    storage.save("Book", book)
    print(f"  Saved: Book #{book['id']} -> author #{book['author']}")

print("\nAll books in the store:")
for book in storage.search("Book"):
    print(f"  [{book.id}] {book.get('title')} ({book.get('year')}) by {book.get('author').get('name')}")

print("\nBooks after 1980:")
for book in storage.search("Book", lambda entity, index, records: entity.get("year") > 1980):
    print(f"  {book.get('title')}")

# Show files created
print(f"\nFiles created in {data_dir}:")
for f in sorted(data_dir.iterdir()):
    print(f"  {f.name} ({f.stat().st_size} bytes)")

print("\n" + "=" * 60)
print("You can now inspect this data with the dump tool:")
print(f"  json-tables-dump {data_dir}")
print(f"  json-tables-dump {data_dir} Book --json")
