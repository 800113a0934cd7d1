from collections import namedtuple

from sikeu.models import UserRole


# Aksi yang dicek oleh @action_required. Hak akses halaman (section) dicek
# oleh route guard lewat route_prefixes.
MANAGE_STUDENTS = 'manage_students'
MANAGE_CLASSES = 'manage_classes'
MANAGE_USERS = 'manage_users'
MANAGE_SCHEDULE = 'manage_schedule'
MANAGE_INCOME = 'manage_income'
MANAGE_EXPENSES = 'manage_expenses'
MANAGE_NOTIFICATIONS = 'manage_notifications'
EXPORT_REPORTS = 'export_reports'
SUBMIT_PAYMENT_PROOF = 'submit_payment_proof'
CONTACT_ADMIN = 'contact_admin'

FINANCE_ACTIONS = frozenset({MANAGE_SCHEDULE, MANAGE_INCOME, MANAGE_EXPENSES, EXPORT_REPORTS})
ADMIN_ACTIONS = FINANCE_ACTIONS | {MANAGE_STUDENTS, MANAGE_CLASSES, MANAGE_USERS, MANAGE_NOTIFICATIONS}

RolePolicy = namedtuple('RolePolicy', ['label', 'home', 'route_prefixes', 'actions'])

ROLE_POLICIES = {
    UserRole.ADMIN: RolePolicy('Administrator', '/admin', ('/admin',), frozenset(ADMIN_ACTIONS)),
    UserRole.BENDAHARA: RolePolicy('Bendahara', '/admin', ('/admin',), FINANCE_ACTIONS),
    # Guru belum punya dashboard.
    UserRole.GURU: RolePolicy('Guru', None, (), frozenset()),
    UserRole.PARENT: RolePolicy('Orang Tua', '/parent', ('/parent',), frozenset({SUBMIT_PAYMENT_PROOF, CONTACT_ADMIN})),
}

NO_POLICY = RolePolicy('-', None, (), frozenset())


def parse_role(raw):
    if not raw:
        return None

    if isinstance(raw, UserRole):
        return raw

    if isinstance(raw, str):
        normalized = raw.strip()
        if not normalized:
            return None

        try:
            return UserRole[normalized.upper()]
        except KeyError:
            pass

        for role in UserRole:
            if normalized.lower() == role.value:
                return role

    return None


def policy_for(role):
    return ROLE_POLICIES.get(parse_role(role), NO_POLICY)


def role_label(role):
    return policy_for(role).label


def home_for(role):
    return policy_for(role).home


def can(role, action):
    return action in policy_for(role).actions


def path_in_prefix(path, prefix):
    return path == prefix or path.startswith(prefix + '/')


def can_access_path(role, path):
    return any(path_in_prefix(path, prefix) for prefix in policy_for(role).route_prefixes)


def role_choices():
    return [(role.value, policy_for(role).label) for role in UserRole]
