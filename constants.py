from enum import Enum

from errors import ValidationError


class Category(str, Enum):
    FOOD_DINING = 'Food & Dining'
    TRANSPORTATION = 'Transportation'
    HOUSING = 'Housing'
    UTILITIES = 'Utilities'
    HEALTHCARE = 'Healthcare'
    ENTERTAINMENT = 'Entertainment'
    SHOPPING = 'Shopping'
    EDUCATION = 'Education'
    PERSONAL_CARE = 'Personal Care'
    INSURANCE = 'Insurance'
    SAVINGS_INVESTMENTS = 'Savings & Investments'
    OTHER = 'Other'

    @classmethod
    def parse(cls, label):
        """Resolve a canonical label or legacy alias to its canonical tag."""
        if isinstance(label, cls):
            return label
        if not isinstance(label, str):
            raise ValidationError(f'{label} is not a valid category')
        text = label.strip()
        if text in CATEGORY_ALIASES:
            return CATEGORY_ALIASES[text]
        try:
            return cls(text)
        except ValueError:
            raise ValidationError(f'{label} is not a valid category') from None


# Legacy labels still sent by older frontend builds
CATEGORY_ALIASES = {
    'Food': Category.FOOD_DINING,
    'Travel': Category.TRANSPORTATION,
    'Rent': Category.HOUSING,
    'Others': Category.OTHER,
}

# Recommended share of monthly income per category, in percent (50/30/20 based)
BUDGET_ALLOCATION = {
    Category.HOUSING: 30,
    Category.FOOD_DINING: 15,
    Category.TRANSPORTATION: 15,
    Category.UTILITIES: 10,
    Category.HEALTHCARE: 5,
    Category.INSURANCE: 5,
    Category.SAVINGS_INVESTMENTS: 20,
    Category.ENTERTAINMENT: 5,
    Category.SHOPPING: 5,
    Category.EDUCATION: 5,
    Category.PERSONAL_CARE: 3,
    Category.OTHER: 2,
}

SAVINGS_TARGET_RATE = 0.20
HEALTHY_EXPENSE_RATIO = 80

DEFAULT_INCOME_SOURCE = 'Salary'
DESCRIPTION_MAX_LENGTH = 200

MONTH_NAMES = ['January', 'February', 'March', 'April', 'May', 'June', 'July',
               'August', 'September', 'October', 'November', 'December']
