from datetime import date, timedelta
from typing import Optional


class BusinessRules:
    ALERT_DAYS_AHEAD = 7
    ALERT_KM_AHEAD = 500
    COST_WINDOW_DAYS = 30

    @staticmethod
    def is_retroactive_mileage(current_km: Optional[int], submitted_km: Optional[int]) -> bool:
        """A submitted service km below the vehicle's stored km likely means a typo."""
        if submitted_km is None or current_km is None:
            return False
        return submitted_km < current_km

    @staticmethod
    def days_alert_due(days_until: int) -> bool:
        return 0 <= days_until <= BusinessRules.ALERT_DAYS_AHEAD

    @staticmethod
    def km_alert_due(km_until: int) -> bool:
        return 0 <= km_until <= BusinessRules.ALERT_KM_AHEAD

    @staticmethod
    def cost_window_start(today: date) -> date:
        """First day (inclusive) of the trailing cost window."""
        return today - timedelta(days=BusinessRules.COST_WINDOW_DAYS)
