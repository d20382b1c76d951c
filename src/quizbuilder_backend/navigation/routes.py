from typing import Dict, List
from pydantic import BaseModel, ConfigDict

from quizbuilder_backend.permissions.principal import Role


class NavigationItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    label: str
    icon: str


NAVIGATION_MAP: Dict[str, List[NavigationItem]] = {
    Role.SUPER_ADMIN.value: [
        NavigationItem(path="/super-admin/dashboard", label="Dashboard", icon="dashboard"),
        NavigationItem(path="/super-admin/tenants", label="Tenants", icon="building"),
        NavigationItem(path="/super-admin/users", label="Users", icon="users"),
        NavigationItem(path="/super-admin/subscriptions", label="Subscriptions", icon="credit-card"),
        NavigationItem(path="/super-admin/analytics", label="Analytics", icon="chart-bar"),
        NavigationItem(path="/super-admin/settings", label="Settings", icon="cog"),
    ],
    Role.INSTRUCTOR.value: [
        NavigationItem(path="/instructor/dashboard", label="Dashboard", icon="dashboard"),
        NavigationItem(path="/instructor/quizzes", label="My Quizzes", icon="document-text"),
        NavigationItem(path="/instructor/classrooms", label="Classrooms", icon="academic-cap"),
        NavigationItem(path="/instructor/students", label="Students", icon="users"),
        NavigationItem(path="/instructor/analytics", label="Analytics", icon="chart-bar"),
        NavigationItem(path="/instructor/subscription", label="Subscription", icon="credit-card"),
    ],
    Role.STUDENT.value: [
        NavigationItem(path="/student/dashboard", label="Dashboard", icon="dashboard"),
        NavigationItem(path="/student/quizzes", label="Available Quizzes", icon="document-text"),
        NavigationItem(path="/student/results", label="My Results", icon="chart-bar"),
        NavigationItem(path="/student/profile", label="Profile", icon="user"),
    ],
}


def navigation_items_for(role: str) -> List[NavigationItem]:
    return list(NAVIGATION_MAP.get(role, []))


def register_default_routes(router):
    """Route table of the quiz builder application"""

    # Public
    public = {"requires_auth": False, "meta": {"public": True}}
    router.define_route("/login", "LoginPage", title="Login", **public)
    router.define_route("/register", "RegisterPage", title="Register", **public)
    router.define_route("/forgot-password", "ForgotPasswordPage", title="Forgot Password", **public)
    router.define_route("/reset-password", "ResetPasswordPage", title="Reset Password", **public)
    router.define_route("/pricing", "PricingPage", title="Pricing", **public)

    # Super admin
    admin = {"roles": [Role.SUPER_ADMIN], "layout": "admin"}
    router.define_route("/super-admin", "SuperAdminDashboard", title="Super Admin Dashboard", **admin)
    router.define_route("/super-admin/dashboard", "SuperAdminDashboard", title="Dashboard", **admin)
    router.define_route("/super-admin/tenants", "TenantsManagement", title="Tenants", **admin)
    router.define_route("/super-admin/users", "UsersManagement", title="Users", **admin)
    router.define_route("/super-admin/subscriptions", "SubscriptionsManagement", title="Subscriptions", **admin)
    router.define_route("/super-admin/analytics", "SystemAnalytics", title="Analytics", **admin)
    router.define_route("/super-admin/settings", "SystemSettings", title="Settings", **admin)

    # Instructor
    instructor = {"roles": [Role.INSTRUCTOR], "layout": "instructor"}
    router.define_route("/instructor", "InstructorDashboard", title="Instructor Dashboard", **instructor)
    router.define_route("/instructor/dashboard", "InstructorDashboard", title="Dashboard", **instructor)
    router.define_route("/instructor/quizzes", "QuizzesManagement", title="My Quizzes",
                        features=["create_quizzes"], **instructor)
    router.define_route("/instructor/quizzes/new", "QuizBuilder", title="Create Quiz",
                        features=["create_quizzes"], **instructor)
    router.define_route("/instructor/quizzes/:id", "QuizEditor", title="Edit Quiz",
                        features=["create_quizzes"], **instructor)
    router.define_route("/instructor/quizzes/:id/analytics", "QuizAnalytics", title="Quiz Analytics",
                        features=["basic_analytics"], **instructor)
    router.define_route("/instructor/classrooms", "ClassroomsManagement", title="Classrooms",
                        features=["manage_classrooms"], **instructor)
    router.define_route("/instructor/classrooms/new", "ClassroomBuilder", title="Create Classroom",
                        features=["manage_classrooms"], **instructor)
    router.define_route("/instructor/classrooms/:id", "ClassroomDetail", title="Classroom Detail",
                        features=["manage_classrooms"], **instructor)
    router.define_route("/instructor/students", "StudentsManagement", title="Students",
                        features=["invite_students"], **instructor)
    router.define_route("/instructor/analytics", "InstructorAnalytics", title="Analytics",
                        features=["basic_analytics"], **instructor)
    router.define_route("/instructor/settings", "InstructorSettings", title="Settings", **instructor)
    router.define_route("/instructor/subscription", "SubscriptionManagement", title="Subscription", **instructor)

    # Student
    student = {"roles": [Role.STUDENT], "layout": "student"}
    router.define_route("/student", "StudentDashboard", title="Student Dashboard", **student)
    router.define_route("/student/dashboard", "StudentDashboard", title="Dashboard", **student)
    router.define_route("/student/quizzes", "StudentQuizzes", title="Available Quizzes",
                        features=["take_quizzes"], **student)
    router.define_route("/student/quiz/:id", "TakeQuiz", title="Take Quiz", features=["take_quizzes"], **student)
    router.define_route("/student/results", "StudentResults", title="My Results",
                        features=["view_own_results"], **student)
    router.define_route("/student/result/:id", "ResultDetail", title="Result Detail",
                        features=["view_own_results"], **student)
    router.define_route("/student/profile", "StudentProfile", title="Profile", **student)

    # Error pages
    error = {"requires_auth": False, "meta": {"error": True}}
    router.define_route("/404", "NotFoundPage", title="Page Not Found", **error)
    router.define_route("/403", "ForbiddenPage", title="Access Denied", **error)
    router.define_route("/500", "ServerErrorPage", title="Server Error", **error)

    return router
