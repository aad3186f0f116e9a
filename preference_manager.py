"""
Preference Manager for CalcuSolve
Loads and updates each user's dark mode, history limit and default mode
"""
import config


def default_preferences():
    """Preferences used for anonymous sessions and new users"""
    return {
        'id': None,
        'dark_mode': False,
        'history_limit': config.DEFAULT_HISTORY_LIMIT,
        'default_mode': config.DEFAULT_MODE,
    }


class PreferenceManager:
    def __init__(self, db):
        self.db = db

    def get_preference(self, user_id):
        """Get a user's preferences, creating the defaults on first use"""
        row = self.db.get_preference(user_id)
        if row is None:
            defaults = default_preferences()
            self.db.add_preference(
                user_id,
                dark_mode=defaults['dark_mode'],
                history_limit=defaults['history_limit'],
                default_mode=defaults['default_mode'],
            )
            # On failure another request created the row first
            row = self.db.get_preference(user_id)
        return self._to_dict(row)

    def update_preference(self, user_id, /, **changes):
        """Validate and save preference changes, returning the updated preferences"""
        self.get_preference(user_id)
        self.db.update_preference(user_id, **self.validate(changes))
        return self.get_preference(user_id)

    def validate(self, changes):
        cleaned = {}
        for key, value in changes.items():
            if key == 'dark_mode':
                if not isinstance(value, bool):
                    raise ValueError("dark_mode must be true or false")
                cleaned[key] = value
            elif key == 'history_limit':
                if isinstance(value, bool) or not isinstance(value, int):
                    raise ValueError("history_limit must be an integer")
                if not 1 <= value <= config.MAX_HISTORY_LIMIT:
                    raise ValueError(
                        f"history_limit must be between 1 and {config.MAX_HISTORY_LIMIT}")
                cleaned[key] = value
            elif key == 'default_mode':
                if value not in self.get_mode_names():
                    raise ValueError(f"Unknown calculator mode: {value}")
                cleaned[key] = value
            else:
                raise ValueError(f"Unknown preference: {key}")
        return cleaned

    def get_mode_names(self):
        return [row[1] for row in self.db.get_catalog_records('calculator_modes')]

    @staticmethod
    def _to_dict(row):
        return {
            'id': row[0],
            'dark_mode': bool(row[2]),
            'history_limit': row[3],
            'default_mode': row[4],
        }
