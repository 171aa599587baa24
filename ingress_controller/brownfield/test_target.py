import unittest

from .target import Target, TargetSpec, get_target_list, in_probe_list, is_target_in_list, normalize_path

HOST = "bye.com"


def probe(host=HOST, path="/foo"):
    return {'name': 'probe-name', 'properties': {'protocol': 'Https', 'host': host, 'path': path}}


class TestNormalizePath(unittest.TestCase):
    def test_strips_trailing_wildcards_and_slashes(self):
        self.assertEqual(normalize_path("*//*hello/**/*//"), "*//*hello")
        for path in ("/foo/*", "/foo/**/*", "/foo/", "/foo"):
            self.assertEqual(normalize_path(path), "/foo")

    def test_idempotent(self):
        for path in ("", "/", "*", "/a/b/**", "/foo*/bar/", "x/*y*/"):
            once = normalize_path(path)
            self.assertEqual(normalize_path(once), once)

    def test_root_normalizes_to_empty(self):
        self.assertEqual(normalize_path("/*"), "")


class TestTargetList(unittest.TestCase):
    def test_one_target_per_path(self):
        """Declared paths expand into one Target each"""
        spec = TargetSpec(hostname=HOST, port=443, paths=("/foo", "/bar", "/baz"))

        targets = get_target_list([spec])

        self.assertEqual(len(targets), 3)
        for path in ("/foo", "/bar", "/baz"):
            self.assertIn(Target(host=HOST, port=443, path=path), targets)

    def test_no_paths_covers_whole_host(self):
        targets = get_target_list([TargetSpec(hostname=HOST, port=80)])
        self.assertEqual(targets, [Target(host=HOST, port=80, path=None)])

    def test_duplicates_are_kept(self):
        spec = TargetSpec(hostname=HOST, port=80, paths=("/a",))
        self.assertEqual(len(get_target_list([spec, spec])), 2)

    def test_from_custom_object(self):
        obj = {'spec': {'hostname': HOST, 'port': 443, 'paths': ['/fox', '/bar']}}
        self.assertEqual(TargetSpec.from_custom_object(obj), TargetSpec(HOST, 443, ('/fox', '/bar')))

        obj = {'spec': {'hostname': HOST, 'port': 80}}
        self.assertEqual(TargetSpec.from_custom_object(obj).paths, ())


class TestMatching(unittest.TestCase):
    def test_target_equality_is_exact(self):
        target_list = [Target(HOST, 443, None), Target(HOST, 80, "/foo")]

        self.assertTrue(is_target_in_list(Target(HOST, 443), target_list))
        self.assertTrue(is_target_in_list(Target(HOST, 80, "/foo"), target_list))
        # A path-less entry is not a wildcard for pools
        self.assertFalse(is_target_in_list(Target(HOST, 443, "/foo"), target_list))
        self.assertFalse(is_target_in_list(Target(HOST, 80, "/foo/"), target_list))
        self.assertFalse(is_target_in_list(Target(HOST, 80), target_list))

    def test_empty_path_is_not_any_path(self):
        self.assertNotEqual(Target(HOST, 80, ""), Target(HOST, 80, None))
        self.assertFalse(is_target_in_list(Target(HOST, 80, ""), [Target(HOST, 80)]))

    def test_unmapped_resource_matches_nothing(self):
        self.assertFalse(is_target_in_list(None, [Target(HOST, 80)]))

    def test_probe_in_list_ignores_port(self):
        self.assertTrue(in_probe_list(probe(), [Target(HOST, 8080, None)]))

    def test_probe_in_list_by_normalized_path(self):
        target_list = get_target_list([TargetSpec(HOST, 443, ("/foo/*",))])

        self.assertTrue(in_probe_list(probe(path="/foo"), target_list))
        self.assertTrue(in_probe_list(probe(path="/foo/"), target_list))
        self.assertFalse(in_probe_list(probe(path="/bar"), target_list))
        self.assertFalse(in_probe_list(probe(host="other.com"), target_list))

    def test_probe_in_managed_but_not_prohibited_list(self):
        prohibited = get_target_list([TargetSpec(HOST, 443, ("/fox", "/bar"))])
        managed = get_target_list([TargetSpec(HOST, 443, ("/foo", "/bar", "/baz"))])

        self.assertFalse(in_probe_list(probe(), prohibited))
        self.assertTrue(in_probe_list(probe(), managed))


if __name__ == '__main__':
    unittest.main()
