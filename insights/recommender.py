from dataclasses import dataclass, field
from datetime import date, datetime

import storage
from constants import BUDGET_ALLOCATION, HEALTHY_EXPENSE_RATIO, SAVINGS_TARGET_RATE
from insights.aggregation import (
    aggregate_by_category,
    current_month_range,
    percentage,
    round_whole,
    total_amount,
)

SET_INCOME_MESSAGE = 'Please set your monthly income to get personalized recommendations'


@dataclass
class CategorySuggestion:
    current_spending: float
    recommended_spending: float
    potential_savings: float
    percentage_of_income: float
    status: str

    def to_dict(self):
        return {
            'currentSpending': self.current_spending,
            'recommendedSpending': self.recommended_spending,
            'potentialSavings': self.potential_savings,
            'percentageOfIncome': self.percentage_of_income,
            'status': self.status,
        }


@dataclass
class RecommendationResult:
    user_id: int
    recommended_savings: float
    total_expenses: float = 0
    expense_to_income_ratio: float = 0
    category_suggestions: dict = field(default_factory=dict)
    generated_at: datetime = None
    message: str = None

    def to_dict(self):
        data = {
            'userId': self.user_id,
            'recommendedSavings': self.recommended_savings,
            'categorySuggestions': {c.value: s.to_dict() for c, s in self.category_suggestions.items()},
        }
        if self.message:
            data['message'] = self.message
            return data
        data.update({
            'totalExpenses': self.total_expenses,
            'expenseToIncomeRatio': self.expense_to_income_ratio,
            'generatedAt': self.generated_at.isoformat(),
        })
        return data


def suggest_for_categories(category_totals, income):
    """Compare current spending with the budget allocation for every budgeted category."""
    suggestions = {}
    for category, pct in BUDGET_ALLOCATION.items():
        current = category_totals.get(category, 0)
        recommended = income * pct / 100
        suggestions[category] = CategorySuggestion(
            current_spending=current,
            recommended_spending=recommended,
            potential_savings=max(0, current - recommended),
            percentage_of_income=percentage(current, income),
            status='overspending' if current > recommended else 'good',
        )
    return suggestions


def recommended_savings_for(income, total_expenses, suggestions):
    ratio = percentage(total_expenses, income)
    if ratio < HEALTHY_EXPENSE_RATIO:
        # spending is under control: top actual savings up to the flat target
        current_savings = income - total_expenses
        return max(0, income * SAVINGS_TARGET_RATE - current_savings)
    return sum(s.potential_savings for s in suggestions.values() if s.potential_savings > 0)


def generate_recommendations(user_id, today=None):
    user = storage.find_user(user_id)
    income = user.monthly_income
    if income == 0:
        return RecommendationResult(user_id=user.id, recommended_savings=0, message=SET_INCOME_MESSAGE)

    period = current_month_range(today or date.today())
    expenses = storage.find_expenses(user.id, period.start, period.end)
    total = total_amount(expenses)
    suggestions = suggest_for_categories(aggregate_by_category(expenses), income)

    result = RecommendationResult(
        user_id=user.id,
        recommended_savings=round_whole(recommended_savings_for(income, total, suggestions)),
        total_expenses=round_whole(total),
        expense_to_income_ratio=percentage(total, income),
        category_suggestions=suggestions,
        generated_at=datetime.now(),
    )
    storage.save_recommendation_snapshot(
        user_id=user.id,
        recommended_savings=result.recommended_savings,
        total_expenses=result.total_expenses,
        expense_to_income_ratio=result.expense_to_income_ratio,
        category_suggestions=result.to_dict()['categorySuggestions'],
        generated_at=result.generated_at,
    )
    return result


def latest_recommendation(user_id):
    user = storage.find_user(user_id)
    return storage.latest_recommendation(user.id)
