"""Module registry seed data.

Each module lists the permissions that open it, its sub-modules, and the
components (pages, buttons, widgets) inside them with the permissions each
one needs.
"""
from __future__ import annotations

from ..core.enums import ComponentType, ModuleCategory

REGISTRY_PERMISSIONS = ("modules.view", "modules.create", "modules.update", "modules.delete")


def _component(code: str, name: str, type_: ComponentType, route: str | None, permissions: list[str]) -> dict:
    return {"code": code, "name": name, "type": type_, "route": route, "permissions": permissions}


def _crud(prefix: str, label: str, perm: str, route: str, *, extra: tuple[str, ...] = ()) -> list[dict]:
    """A list page plus create/edit/delete buttons, and optional import/export."""
    components = [
        _component(f"{prefix}_LIST", f"{label} List", ComponentType.PAGE, route, [f"{perm}.view"]),
        _component(f"CREATE_{prefix}_BTN", f"Create {label}", ComponentType.ACTION, None, [f"{perm}.create"]),
        _component(f"EDIT_{prefix}_BTN", f"Edit {label}", ComponentType.ACTION, None, [f"{perm}.update"]),
        _component(f"DELETE_{prefix}_BTN", f"Delete {label}", ComponentType.ACTION, None, [f"{perm}.delete"]),
    ]
    for action in extra:
        components.append(
            _component(
                f"{action.upper()}_{prefix}_BTN",
                f"{action.title()} {label}",
                ComponentType.ACTION,
                None,
                [f"{perm}.{action}"],
            )
        )
    return components


MODULE_DEFINITIONS: list[dict] = [
    {
        "code": "CORE",
        "name": "Dashboard & Analytics",
        "description": "Main dashboard, statistics and system updates",
        "icon": "HomeIcon",
        "route_prefix": "/",
        "category": ModuleCategory.CORE,
        "priority": 1,
        "is_core": True,
        "permissions": ["core.dashboard.view", "core.stats.view", "core.updates.view"],
        "sub_modules": [
            {
                "code": "DASHBOARD",
                "name": "Dashboard",
                "icon": "HomeIcon",
                "route": "/dashboard",
                "priority": 1,
                "permissions": ["core.dashboard.view"],
                "components": [
                    _component("DASHBOARD_PAGE", "Dashboard Page", ComponentType.PAGE, "dashboard", ["core.dashboard.view"]),
                    _component("STATS_WIDGET", "Statistics Widget", ComponentType.WIDGET, None, ["core.stats.view"]),
                    _component("UPDATES_WIDGET", "Updates Widget", ComponentType.WIDGET, None, ["core.updates.view"]),
                ],
            },
        ],
    },
    {
        "code": "SELF_SERVICE",
        "name": "Self Service Portal",
        "description": "Employee self-service: own attendance, leaves and profile",
        "icon": "UserCircleIcon",
        "route_prefix": "/self-service",
        "category": ModuleCategory.SELF_SERVICE,
        "priority": 2,
        "is_core": True,
        "permissions": ["attendance.own.view", "leave.own.view", "profile.own.view"],
        "sub_modules": [
            {
                "code": "MY_ATTENDANCE",
                "name": "My Attendance",
                "icon": "ClockIcon",
                "route": "/self-service/attendance",
                "priority": 1,
                "permissions": ["attendance.own.view", "attendance.own.punch"],
                "components": [
                    _component("MY_ATTENDANCE_PAGE", "My Attendance Page", ComponentType.PAGE, "attendance-employee", ["attendance.own.view"]),
                    _component("PUNCH_ACTION", "Punch In/Out", ComponentType.ACTION, None, ["attendance.own.punch"]),
                ],
            },
            {
                "code": "MY_LEAVES",
                "name": "My Leaves",
                "icon": "CalendarIcon",
                "route": "/self-service/leaves",
                "priority": 2,
                "permissions": ["leave.own.view", "leave.own.create", "leave.own.update", "leave.own.delete"],
                "components": [
                    _component("MY_LEAVES_PAGE", "My Leaves Page", ComponentType.PAGE, "leaves-employee", ["leave.own.view"]),
                    _component("CREATE_LEAVE_BTN", "Apply Leave", ComponentType.ACTION, None, ["leave.own.create"]),
                    _component("EDIT_LEAVE_BTN", "Edit Leave", ComponentType.ACTION, None, ["leave.own.update"]),
                    _component("CANCEL_LEAVE_BTN", "Cancel Leave", ComponentType.ACTION, None, ["leave.own.delete"]),
                ],
            },
            {
                "code": "MY_PROFILE",
                "name": "My Profile",
                "icon": "UserIcon",
                "route": "/self-service/profile",
                "priority": 3,
                "permissions": ["profile.own.view", "profile.own.update", "profile.password.change"],
                "components": [
                    _component("PROFILE_PAGE", "Profile Page", ComponentType.PAGE, "profile", ["profile.own.view"]),
                    _component("EDIT_PROFILE_BTN", "Edit Profile", ComponentType.ACTION, None, ["profile.own.update"]),
                    _component("CHANGE_PASSWORD_BTN", "Change Password", ComponentType.ACTION, None, ["profile.password.change"]),
                ],
            },
        ],
    },
    {
        "code": "HRM",
        "name": "Human Resource Management",
        "description": "Employees, departments, attendance, leaves and holidays",
        "icon": "UserGroupIcon",
        "route_prefix": "/hr",
        "category": ModuleCategory.HUMAN_RESOURCES,
        "priority": 3,
        "permissions": ["employees.view", "departments.view", "attendance.view", "leaves.view"],
        "sub_modules": [
            {
                "code": "EMPLOYEES",
                "name": "Employees",
                "icon": "UsersIcon",
                "route": "/hr/employees",
                "priority": 1,
                "permissions": ["employees.view"],
                "components": _crud("EMPLOYEE", "Employee", "employees", "employees", extra=("import", "export")),
            },
            {
                "code": "DEPARTMENTS",
                "name": "Departments",
                "icon": "BuildingOfficeIcon",
                "route": "/hr/departments",
                "priority": 2,
                "permissions": ["departments.view"],
                "components": _crud("DEPARTMENT", "Department", "departments", "departments"),
            },
            {
                "code": "DESIGNATIONS",
                "name": "Designations",
                "icon": "BriefcaseIcon",
                "route": "/hr/designations",
                "priority": 3,
                "permissions": ["designations.view"],
                "components": _crud("DESIGNATION", "Designation", "designations", "designations"),
            },
            {
                "code": "ATTENDANCE",
                "name": "Attendance",
                "icon": "ClockIcon",
                "route": "/hr/attendance",
                "priority": 4,
                "permissions": ["attendance.view"],
                "components": _crud("ATTENDANCE", "Attendance", "attendance", "attendances", extra=("import", "export")),
            },
            {
                "code": "HOLIDAYS",
                "name": "Holidays",
                "icon": "SunIcon",
                "route": "/hr/holidays",
                "priority": 5,
                "permissions": ["holidays.view"],
                "components": _crud("HOLIDAY", "Holiday", "holidays", "holidays"),
            },
            {
                "code": "LEAVES",
                "name": "Leaves",
                "icon": "CalendarDaysIcon",
                "route": "/hr/leaves",
                "priority": 6,
                "permissions": ["leaves.view"],
                "components": _crud("LEAVE", "Leave", "leaves", "leaves", extra=("approve", "analytics")),
            },
            {
                "code": "LEAVE_SETTINGS",
                "name": "Leave Settings",
                "icon": "Cog6ToothIcon",
                "route": "/hr/leave-settings",
                "priority": 7,
                "permissions": ["leave-settings.view"],
                "components": [
                    _component("LEAVE_SETTINGS_PAGE", "Leave Settings Page", ComponentType.PAGE, "leave-settings", ["leave-settings.view"]),
                    _component("UPDATE_LEAVE_SETTINGS_BTN", "Update Leave Settings", ComponentType.ACTION, None, ["leave-settings.update"]),
                ],
            },
            {
                "code": "JURISDICTIONS",
                "name": "Jurisdictions",
                "icon": "MapIcon",
                "route": "/hr/jurisdictions",
                "priority": 8,
                "permissions": ["jurisdiction.view"],
                "components": _crud("JURISDICTION", "Jurisdiction", "jurisdiction", "jurisdictions"),
            },
        ],
    },
    {
        "code": "PPM",
        "name": "Project & Portfolio Management",
        "description": "Daily works (RFIs), objections, tasks and reports",
        "icon": "BriefcaseIcon",
        "route_prefix": "/projects",
        "category": ModuleCategory.PROJECT_MANAGEMENT,
        "priority": 4,
        "permissions": ["daily-works.view", "tasks.view", "reports.view", "projects.analytics"],
        "sub_modules": [
            {
                "code": "DAILY_WORKS",
                "name": "Daily Works",
                "icon": "ClipboardDocumentListIcon",
                "route": "/projects/daily-works",
                "priority": 1,
                "permissions": ["daily-works.view"],
                "components": _crud("DAILY_WORK", "Daily Work", "daily-works", "daily-works", extra=("import", "export")),
            },
            {
                "code": "PROJECT_ANALYTICS",
                "name": "Project Analytics",
                "icon": "ChartBarIcon",
                "route": "/projects/analytics",
                "priority": 2,
                "permissions": ["projects.analytics"],
                "components": [
                    _component("DAILY_WORK_SUMMARY_PAGE", "Daily Work Summary", ComponentType.PAGE, "daily-works-summary", ["projects.analytics"]),
                ],
            },
            {
                "code": "TASKS",
                "name": "Tasks",
                "icon": "CheckCircleIcon",
                "route": "/projects/tasks",
                "priority": 3,
                "permissions": ["tasks.view"],
                "components": _crud("TASK", "Task", "tasks", "tasks", extra=("assign",)),
            },
            {
                "code": "REPORTS",
                "name": "Reports",
                "icon": "DocumentChartBarIcon",
                "route": "/projects/reports",
                "priority": 4,
                "permissions": ["reports.view"],
                "components": _crud("REPORT", "Report", "reports", "reports"),
            },
        ],
    },
    {
        "code": "EVENTS",
        "name": "Event Management",
        "description": "Events, sub-events and public registrations",
        "icon": "TicketIcon",
        "route_prefix": "/events",
        "category": ModuleCategory.EVENT_MANAGEMENT,
        "priority": 5,
        "permissions": ["event.view", "event.registration.manage"],
        "sub_modules": [
            {
                "code": "EVENT_LIST",
                "name": "Events",
                "icon": "CalendarIcon",
                "route": "/events",
                "priority": 1,
                "permissions": ["event.view"],
                "components": _crud("EVENT", "Event", "event", "events")
                + [_component("PUBLISH_EVENT_BTN", "Publish Event", ComponentType.ACTION, None, ["event.update"])],
            },
            {
                "code": "REGISTRATIONS",
                "name": "Registrations",
                "icon": "IdentificationIcon",
                "route": "/events/registrations",
                "priority": 2,
                "permissions": ["event.registration.manage"],
                "components": [
                    _component("REGISTRATIONS_LIST", "Registrations List", ComponentType.PAGE, "event-registrations", ["event.registration.manage"]),
                    _component("APPROVE_REGISTRATION_BTN", "Approve Registration", ComponentType.ACTION, None, ["event.registration.manage"]),
                    _component("REJECT_REGISTRATION_BTN", "Reject Registration", ComponentType.ACTION, None, ["event.registration.manage"]),
                    _component("VERIFY_PAYMENT_BTN", "Verify Payment", ComponentType.ACTION, None, ["event.registration.manage"]),
                ],
            },
        ],
    },
    {
        "code": "ADMIN",
        "name": "System Administration",
        "description": "Users, roles, modules, settings, audit and backups",
        "icon": "ShieldCheckIcon",
        "route_prefix": "/admin",
        "category": ModuleCategory.ADMINISTRATION,
        "priority": 10,
        "permissions": ["users.view", "roles.view", "settings.view", "modules.view"],
        "sub_modules": [
            {
                "code": "USERS",
                "name": "Users",
                "icon": "UsersIcon",
                "route": "/admin/users",
                "priority": 1,
                "permissions": ["users.view"],
                "components": _crud("USER", "User", "users", "users", extra=("impersonate",)),
            },
            {
                "code": "ROLES",
                "name": "Roles & Permissions",
                "icon": "KeyIcon",
                "route": "/admin/roles",
                "priority": 2,
                "permissions": ["roles.view"],
                "components": _crud("ROLE", "Role", "roles", "roles")
                + [_component("ASSIGN_PERMISSIONS_BTN", "Assign Permissions", ComponentType.ACTION, None, ["permissions.assign"])],
            },
            {
                "code": "MODULES",
                "name": "Modules",
                "icon": "Squares2X2Icon",
                "route": "/admin/modules",
                "priority": 3,
                "permissions": ["modules.view"],
                "components": _crud("MODULE", "Module", "modules", "modules"),
            },
            {
                "code": "SETTINGS",
                "name": "Settings",
                "icon": "Cog6ToothIcon",
                "route": "/admin/settings",
                "priority": 4,
                "permissions": ["settings.view"],
                "components": [
                    _component("COMPANY_SETTINGS", "Company Settings", ComponentType.SECTION, "admin.settings.company", ["settings.view"]),
                    _component("ATTENDANCE_SETTINGS", "Attendance Settings", ComponentType.SECTION, "admin.settings.attendance", ["settings.view"]),
                    _component("UPDATE_SETTINGS_BTN", "Update Settings", ComponentType.ACTION, None, ["settings.update"]),
                ],
            },
            {
                "code": "AUDIT",
                "name": "Audit Logs",
                "icon": "DocumentMagnifyingGlassIcon",
                "route": "/admin/audit",
                "priority": 5,
                "permissions": ["audit.view"],
                "components": [
                    _component("AUDIT_LIST", "Audit Log List", ComponentType.PAGE, "audit", ["audit.view"]),
                    _component("EXPORT_AUDIT_BTN", "Export Audit Log", ComponentType.ACTION, None, ["audit.export"]),
                ],
            },
            {
                "code": "BACKUP",
                "name": "Backups",
                "icon": "ServerStackIcon",
                "route": "/admin/backup",
                "priority": 6,
                "permissions": ["backup.create", "backup.restore"],
                "components": [
                    _component("CREATE_BACKUP_BTN", "Create Backup", ComponentType.ACTION, None, ["backup.create"]),
                    _component("RESTORE_BACKUP_BTN", "Restore Backup", ComponentType.ACTION, None, ["backup.restore"]),
                ],
            },
        ],
    },
]


def all_permission_names(definitions: list[dict] = MODULE_DEFINITIONS) -> list[str]:
    """Every permission referenced anywhere in the definitions, in first-seen order."""
    seen: dict[str, None] = dict.fromkeys(REGISTRY_PERMISSIONS)
    for module in definitions:
        seen.update(dict.fromkeys(module.get("permissions", ())))
        for sub in module.get("sub_modules", ()):
            seen.update(dict.fromkeys(sub.get("permissions", ())))
            for component in sub.get("components", ()):
                seen.update(dict.fromkeys(component.get("permissions", ())))
        for component in module.get("components", ()):
            seen.update(dict.fromkeys(component.get("permissions", ())))
    return list(seen)
