from paperink.models.profile import Profile
from paperink.models.subscription import Subscription
from paperink.models.credit_transaction import CreditTransaction
from paperink.models.credit_package import CreditPackage
from paperink.models.character import Character
from paperink.models.hero_creation_log import HeroCreationLog
from paperink.models.story import Story
from paperink.models.page import Page
from paperink.models.reminder_settings import ReminderSettings
from paperink.models.unsubscribe_token import UnsubscribeToken
from paperink.models.demo_profile import DemoProfile
from paperink.models.demo_hero import DemoHero
from paperink.models.demo_episode import DemoEpisode
from paperink.models.demo_preference import DemoPreference

__all__ = [
    "Profile", "Subscription", "CreditTransaction", "CreditPackage",
    "Character", "HeroCreationLog", "Story", "Page",
    "ReminderSettings", "UnsubscribeToken",
    "DemoProfile", "DemoHero", "DemoEpisode", "DemoPreference",
]
