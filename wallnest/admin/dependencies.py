from wallnest.admin.service import DashboardService


def get_dashboard_service() -> DashboardService:
    return DashboardService()
