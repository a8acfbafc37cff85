from datetime import date


def _birthday_in_year(birth_date: date, year: int) -> date:
    try:
        return birth_date.replace(year=year)
    except ValueError:
        # 29 February outside a leap year is celebrated on 1 March
        return date(year, 3, 1)


def next_birthday(birth_date: date, today: date) -> date:
    candidate = _birthday_in_year(birth_date, today.year)
    if candidate < today:
        candidate = _birthday_in_year(birth_date, today.year + 1)
    return candidate


def days_until_birthday(birth_date: date, today: date | None = None) -> int:
    """Whole days until the next birthday; 0 when it is today."""
    today = today or date.today()
    return (next_birthday(birth_date, today) - today).days


def calculate_age(birth_date: date, today: date | None = None) -> int:
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age
