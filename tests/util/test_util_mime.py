import unittest

from drivemirror.util.mime import FOLDER_MIME, folder_children_query


class TestUtilMime(unittest.TestCase):
    def test_folder_mime(self) -> None:
        self.assertEqual(FOLDER_MIME, "application/vnd.google-apps.folder")

    def test_folder_children_query(self) -> None:
        q = folder_children_query("P1")
        self.assertEqual(
            q,
            "'P1' in parents and mimeType='application/vnd.google-apps.folder' and trashed=false",
        )
