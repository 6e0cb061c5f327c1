from django.core.management.base import BaseCommand

from ticketing.handlers.dependencies import catalog_service


DEFAULT_CATEGORIES = [
    {"name": "Music & Concerts", "slug": "music-concerts", "icon": "🎵", "color": "#8B5CF6"},
    {"name": "Technology & Innovation", "slug": "technology", "icon": "💻", "color": "#3B82F6"},
    {"name": "Sports & Fitness", "slug": "sports-fitness", "icon": "⚽", "color": "#10B981"},
    {"name": "Arts & Culture", "slug": "arts-culture", "icon": "🎨", "color": "#F59E0B"},
    {"name": "Food & Drink", "slug": "food-drink", "icon": "🍕", "color": "#EF4444"},
    {"name": "Business & Professional", "slug": "business", "icon": "💼", "color": "#6366F1"},
    {"name": "Health & Wellness", "slug": "health-wellness", "icon": "🧘", "color": "#14B8A6"},
    {"name": "Education & Learning", "slug": "education", "icon": "📚", "color": "#EC4899"},
]


class Command(BaseCommand):
    """Create the default event categories. Safe to run repeatedly."""

    help = "Create the default event categories that do not exist yet."

    def handle(self, *args, **options) -> None:
        created = catalog_service().ensure_categories(DEFAULT_CATEGORIES)
        self.stdout.write(
            self.style.SUCCESS(
                f"Created {len(created)} of {len(DEFAULT_CATEGORIES)} categories"
            )
        )
