from dataclasses import replace

from src.enterprise_suite.enterprise_suite.subscriptions.model import BillableModule, SubscriptionPlan


class FakeSubscriptionRepo:
    def __init__(self, modules=(), plans=(), subscriptions=()):
        self.modules = {m.id: m for m in modules}
        self.plans = {p.id: p for p in plans}
        self.pivots = {}
        self.subscriptions = list(subscriptions)
        self.live_counts = {}

    def list_plans(self, *, active_only=False):
        return [p for p in self.plans.values() if p.is_active or not active_only]

    def get_plan(self, plan_id):
        return self.plans.get(int(plan_id))

    def get_plan_by_slug(self, slug):
        return next((p for p in self.plans.values() if p.slug == slug), None)

    def create_plan(self, data):
        plan_id = len(self.plans) + 1
        fields = dict(data, is_popular=bool(data["is_popular"]), is_active=bool(data["is_active"]))
        self.plans[plan_id] = SubscriptionPlan(id=plan_id, **fields)
        return plan_id

    def update_plan(self, plan_id, data):
        fields = dict(data, is_popular=bool(data["is_popular"]), is_active=bool(data["is_active"]))
        self.plans[plan_id] = replace(self.plans[plan_id], **fields)
        return True

    def delete_plan(self, plan_id):
        return self.plans.pop(plan_id, None) is not None

    def plan_modules(self, plan_id):
        return self.pivots.get(plan_id, [])

    def set_plan_modules(self, plan_id, pivots):
        self.pivots[plan_id] = list(pivots)

    def list_modules(self, *, active_only=False):
        return [m for m in self.modules.values() if m.is_active or not active_only]

    def get_modules(self, module_ids):
        return [self.modules[i] for i in module_ids if i in self.modules]

    def get_module_by_code(self, code):
        return next((m for m in self.modules.values() if m.code == code), None)

    def create_module(self, data):
        module_id = len(self.modules) + 1
        self.modules[module_id] = BillableModule(
            id=module_id,
            code=data["code"],
            name=data["name"],
            monthly_price=data["monthly_price"],
            yearly_price=data["yearly_price"],
            description=data["description"],
            is_active=bool(data["is_active"]),
            is_core=bool(data["is_core"]),
        )
        return module_id

    def update_module(self, module_id, data):
        fields = dict(data)
        if "is_active" in fields:
            fields["is_active"] = bool(fields["is_active"])
        self.modules[module_id] = replace(self.modules[module_id], **fields)
        return True

    def delete_module(self, module_id):
        return self.modules.pop(module_id, None) is not None

    def count_live_subscriptions(self, *, plan_id=None, module_id=None):
        return self.live_counts.get(("plan", plan_id) if plan_id else ("module", module_id), 0)

    def create_subscription(self, subscription):
        self.subscriptions.append(replace(subscription, id=len(self.subscriptions) + 1))
        return len(self.subscriptions)

    def latest_subscription(self, tenant_id):
        mine = [s for s in self.subscriptions if s.tenant_id == tenant_id]
        return mine[-1] if mine else None

    def list_subscriptions(self, *, statuses=None):
        return [s for s in self.subscriptions if statuses is None or s.status.value in statuses]

    def delete_subscriptions_for_tenant(self, tenant_id):
        before = len(self.subscriptions)
        self.subscriptions = [s for s in self.subscriptions if s.tenant_id != tenant_id]
        return before - len(self.subscriptions)


def registry_modules():
    return [
        BillableModule(id=1, code="CORE", name="Core", is_core=True),
        BillableModule(id=2, code="HRM", name="HR"),
        BillableModule(id=3, code="PPM", name="Projects"),
        BillableModule(id=4, code="EVENTS", name="Events"),
    ]
