from src.enterprise_suite.enterprise_suite.modules.seeder import ensure_permissions, seed_module_registry


class RecordingService:
    def __init__(self):
        self.calls = []
        self._next = 0

    def _id(self):
        self._next += 1
        return self._next

    def create_or_update_module(self, data):
        self.calls.append(("module", data["code"]))
        return self._id()

    def create_or_update_sub_module(self, module_id, data):
        self.calls.append(("sub", module_id, data["code"]))
        return self._id()

    def create_or_update_component(self, module_id, sub_module_id, data):
        self.calls.append(("component", module_id, sub_module_id, data["code"]))
        return self._id()

    def sync_module_permissions(self, module_id, permissions):
        self.calls.append(("sync-module", module_id, list(permissions)))

    def sync_sub_module_permissions(self, sub_module_id, permissions):
        self.calls.append(("sync-sub", sub_module_id, list(permissions)))

    def sync_component_permissions(self, component_id, permissions):
        self.calls.append(("sync-component", component_id, list(permissions)))

    def statistics(self):
        return {"total_modules": 1, "total_sub_modules": 1, "total_components": 1, "total_requirements": 3}


DEFINITIONS = [
    {
        "code": "hrm",
        "name": "HR",
        "category": "human_resources",
        "permissions": ["hrm.view", "leaves.view"],
        "unknown_key": "ignored",
        "sub_modules": [
            {
                "code": "leaves",
                "name": "Leaves",
                "permissions": ["leaves.view"],
                "components": [{"code": "approve", "name": "Approve", "type": "action", "permissions": ["leaves.approve"]}],
            }
        ],
    }
]


def test_seed_walks_the_tree_and_uses_any_for_modules():
    svc = RecordingService()
    stats = seed_module_registry(svc, DEFINITIONS)

    assert stats["total_requirements"] == 3
    assert svc.calls[0] == ("module", "hrm")
    module_sync = svc.calls[1]
    assert {p["type"] for p in module_sync[2]} == {"any"}
    assert ("sub", 1, "leaves") in svc.calls
    assert ("component", 1, 2, "approve") in svc.calls
    assert ("sync-component", 3, ["leaves.approve"]) in svc.calls


def test_ensure_permissions_passes_names_through():
    class Repo:
        def ensure_permissions(self, names):
            self.names = names
            return len(names)

    repo = Repo()
    assert ensure_permissions(repo, ["a", "b"]) == 2
    assert repo.names == ["a", "b"]
