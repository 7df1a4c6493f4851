from __future__ import annotations

import unittest


class TestPublicApiLockContract(unittest.TestCase):
    def test_api_module_exports_are_present(self) -> None:
        import wbstree.api as api

        self.assertTrue(hasattr(api, "__all__"))
        self.assertIsInstance(api.__all__, (list, tuple))
        self.assertEqual(len(api.__all__), len(api._PUBLIC_EXPORTS))

        for name in api.__all__:
            self.assertIsInstance(name, str)
            self.assertTrue(hasattr(api, name), f"wbstree.api missing public name: {name}")
            obj = getattr(api, name)
            self.assertIsNotNone(obj, f"wbstree.api {name} is None")

    def test_package_reexports_match_api_all(self) -> None:
        import wbstree
        import wbstree.api as api

        for name in api.__all__:
            self.assertTrue(hasattr(wbstree, name), f"wbstree package does not re-export: {name}")
            self.assertIs(getattr(wbstree, name), getattr(api, name), f"wbstree.{name} must be same object as wbstree.api.{name}")

    def test_tools_package_has_no_eager_imports(self) -> None:
        import wbstree.tools as tools

        self.assertEqual(tools.__all__, [])


if __name__ == "__main__":
    unittest.main(verbosity=2)
