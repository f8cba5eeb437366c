from cores.exceptions import ValidationError


def _as_int(value):
    if isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def normalize_attempts_allowed(value):
    """None / '' / 0 mean unlimited (None); otherwise a positive int."""
    if value is None or value == '':
        return None
    number = _as_int(value)
    if number is None or number < 0:
        raise ValidationError("attemptsAllowed must be an integer >= 0")
    return number or None


def normalize_passing_percent(value):
    if value is None or value == '':
        return None
    number = _as_int(value)
    if number is None or not 0 <= number <= 100:
        raise ValidationError("passingPercent must be an integer between 0 and 100")
    return number


def normalize_settings(raw=None, default_duration=None):
    """
    Coerce client quiz settings into the stored shape.

    Timer values are only validated (and kept) when the timer is switched on.
    An enabled timer without durationMinutes takes default_duration.
    """
    out = {
        'timerEnabled': False,
        'shuffleQuestions': True,
        'pagination': {'enabled': False, 'perPage': 1},
        'backtrackingAllowed': True,
    }
    if not isinstance(raw, dict):
        return out

    if raw.get('timerEnabled') is True:
        duration = raw.get('durationMinutes')
        minutes = _as_int(default_duration if duration in (None, '') else duration)
        grace = _as_int(raw['graceSeconds']) if raw.get('graceSeconds') is not None else 0
        if minutes is None or minutes < 1:
            raise ValidationError("Invalid durationMinutes (minimum 1).")
        if grace is None or grace < 0:
            raise ValidationError("Invalid graceSeconds (>= 0).")
        out.update(
            timerEnabled=True,
            durationMinutes=minutes,
            graceSeconds=grace,
            durationMs=minutes * 60 * 1000,
            graceMs=grace * 1000,
        )

    if isinstance(raw.get('shuffleQuestions'), bool):
        out['shuffleQuestions'] = raw['shuffleQuestions']

    pagination = raw.get('pagination')
    if isinstance(pagination, dict):
        per_page = _as_int(pagination.get('perPage'))
        if per_page is None or per_page < 1:
            per_page = 1
        out['pagination'] = {'enabled': bool(pagination.get('enabled')), 'perPage': per_page}

    if isinstance(raw.get('backtrackingAllowed'), bool):
        out['backtrackingAllowed'] = raw['backtrackingAllowed']

    return out
