"""
Service Catalog

Static description of every service, with the actions (triggers) and
reactions it offers and the config fields each one reads. Served by
/about.json and used by clients to build automation forms.

Every (service, action) entry has exactly one registered evaluator, and
every (service, reaction) entry exactly one registered executor.

Usage:
    from integrations.catalog import get_service_catalog, catalog_action_keys

    services = get_service_catalog()
    assert set(catalog_action_keys()) == set(trigger_registry.list_keys())
"""

from typing import Any


# =============================================================================
# Service Catalog
# =============================================================================

SERVICE_CATALOG: dict[str, dict[str, Any]] = {
    "timer": {
        "display_name": "Timer",
        "requires_auth": False,
        "actions": {
            "time_reached": {
                "description": "When a specific time is reached during the day",
                "config_fields": {"hour": "int 0-23", "minute": "int 0-59"},
            },
            "date_reached": {
                "description": "When a specific date is reached",
                "config_fields": {"date": "YYYY-MM-DD"},
            },
            "day_of_week": {
                "description": "When a specific day of the week is reached",
                "config_fields": {"dayOfWeek": "int 0-6, 0 = Sunday"},
            },
        },
        "reactions": {},
    },

    "gmail": {
        "display_name": "Gmail",
        "requires_auth": True,
        "provider": "google",
        "actions": {
            "email_received": {
                "description": "A new email is received",
                "config_fields": {"query": "optional Gmail search query"},
            },
        },
        "reactions": {
            "send_email": {
                "description": "Send an email to a recipient",
                "config_fields": {"to": "email address", "subject": "text", "body": "HTML"},
            },
        },
    },

    "spotify": {
        "display_name": "Spotify",
        "requires_auth": True,
        "provider": "spotify",
        "actions": {
            "new_saved_track": {
                "description": "A track is added to your liked songs",
                "config_fields": {},
            },
        },
        "reactions": {
            "skip_track": {
                "description": "Skip to the next track on the active device",
                "config_fields": {},
            },
            "play_playlist": {
                "description": "Start playing a playlist on the active device",
                "config_fields": {"playlist_uri": "spotify:playlist:..."},
            },
        },
    },

    "youtube": {
        "display_name": "YouTube",
        "requires_auth": True,
        "provider": "google",
        "actions": {
            "new_video": {
                "description": "A channel publishes a new video",
                "config_fields": {"channel_url": "channel URL, @handle or channel id"},
            },
        },
        "reactions": {
            "like_video": {
                "description": "Like a video",
                "config_fields": {"video_id": "video id (or url)", "url": "video URL (or video_id)"},
            },
            "add_to_playlist": {
                "description": "Add a video to one of your playlists",
                "config_fields": {
                    "playlist_id": "playlist id",
                    "video_id": "video id (or url)",
                    "url": "video URL (or video_id)",
                },
            },
            "post_comment": {
                "description": "Comment on a video, or on a channel's latest upload",
                "config_fields": {"url": "video or channel URL", "comment": "text"},
            },
        },
    },

    "github": {
        "display_name": "GitHub",
        "requires_auth": True,
        "provider": "github",
        "actions": {
            "new_commit": {
                "description": "A new commit is pushed to a repository",
                "config_fields": {"repo_owner": "owner login", "repo_name": "repository"},
            },
            "issue_created": {
                "description": "A new issue is created on a repository",
                "config_fields": {"repo_owner": "owner login", "repo_name": "repository"},
            },
            "repository_starred": {
                "description": "Your repository gets a star",
                "config_fields": {"repo_owner": "owner login", "repo_name": "repository"},
            },
        },
        "reactions": {
            "create_issue": {
                "description": "Create a new issue on a repository",
                "config_fields": {
                    "repo_owner": "owner login",
                    "repo_name": "repository",
                    "title": "text",
                    "body": "markdown",
                },
            },
            "add_comment": {
                "description": "Comment on the latest issue or on a specific one",
                "config_fields": {
                    "repo_owner": "owner login",
                    "repo_name": "repository",
                    "issue_option": "last | specific",
                    "issue_number": "int, when issue_option is specific",
                    "comment": "markdown",
                },
            },
        },
    },

    "discord": {
        "display_name": "Discord",
        "requires_auth": True,
        "provider": "discord",
        "actions": {
            "message_received": {
                "description": "A message is received in a Discord channel",
                "config_fields": {"channel_id": "channel id"},
            },
            "user_joined": {
                "description": "A user joins the Discord server",
                "config_fields": {"guild_id": "server (guild) id"},
            },
        },
        "reactions": {
            "send_message": {
                "description": "Send a message to a Discord channel through a webhook",
                # The webhook URL is the credential
                "requires_auth": False,
                "config_fields": {
                    "webhookUrl": "incoming webhook URL",
                    "message": "optional text",
                    "username": "optional bot name",
                },
            },
        },
    },

    "weather": {
        "display_name": "Weather",
        "requires_auth": False,
        "actions": {
            "temperature_above": {
                "description": "The temperature in a city rises above a threshold",
                "config_fields": {"city": "city name", "temperature": "°C"},
            },
            "temperature_below": {
                "description": "The temperature in a city drops below a threshold",
                "config_fields": {"city": "city name", "temperature": "°C"},
            },
            "weather_condition": {
                "description": "A city has the given weather",
                "config_fields": {
                    "city": "city name",
                    "condition": "clear | clouds | mist | drizzle | rain | snow | thunderstorm",
                },
            },
        },
        "reactions": {
            "send_report": {
                "description": "Post a detailed weather report for a city to a Discord webhook",
                "config_fields": {
                    "city": "city name",
                    "webhookUrl": "incoming webhook URL",
                    "username": "optional bot name",
                },
            },
        },
    },
}


# =============================================================================
# Helper Functions
# =============================================================================

def catalog_action_keys() -> list[tuple[str, str]]:
    return [(service, action) for service, config in SERVICE_CATALOG.items() for action in config["actions"]]


def catalog_reaction_keys() -> list[tuple[str, str]]:
    return [
        (service, reaction)
        for service, config in SERVICE_CATALOG.items()
        for reaction in config["reactions"]
    ]


def get_service_catalog() -> list[dict[str, Any]]:
    """
    Catalog in the /about.json shape:

        [{"name": "timer",
          "actions": [{"name": "time_reached", "description": ..., "config_fields": {...},
                       "requires_auth": false}],
          "reactions": [...]}]
    """
    services = []
    for name, config in SERVICE_CATALOG.items():
        services.append({
            "name": name,
            "actions": [
                {"name": action, **entry, "requires_auth": entry_requires_auth(name, "actions", action)}
                for action, entry in config["actions"].items()
            ],
            "reactions": [
                {"name": reaction, **entry, "requires_auth": entry_requires_auth(name, "reactions", reaction)}
                for reaction, entry in config["reactions"].items()
            ],
        })
    return services


def entry_requires_auth(service: str, kind: str, name: str) -> bool:
    """Whether an action ("actions") or reaction ("reactions") needs a linked account."""
    config = SERVICE_CATALOG[service]
    return config[kind][name].get("requires_auth", config["requires_auth"])
