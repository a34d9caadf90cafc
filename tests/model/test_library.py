from model.library import Library
from model.patch import Patch
from model.voice import make_voice


def _patch(name):
    v = make_voice()
    v.set_name(name)
    return Patch(voice=v)


def test_library_creates_dir(tmp_path):
    Library(root=tmp_path / "voices")
    assert (tmp_path / "voices").is_dir()


def test_library_save_and_list_patches(tmp_path):
    lib = Library(root=tmp_path)
    path = lib.save_patch(_patch("Fat Pad"))
    assert path.name == "fat-pad.syx"
    patches = lib.list_patches()
    assert len(patches) == 1
    assert patches[0].name == "Fat Pad"


def test_library_patch_name_collision(tmp_path):
    lib = Library(root=tmp_path)
    first = lib.save_patch(_patch("Test"))
    second = lib.save_patch(_patch("Test"))
    assert first != second
    assert len(lib.list_patches()) == 2


def test_library_skips_corrupt_files(tmp_path):
    lib = Library(root=tmp_path)
    lib.save_patch(_patch("Good"))
    (tmp_path / "broken.syx").write_bytes(b"\xf0\x43\x00\x7e\x04\x48\xf7")
    patches = lib.list_patches()
    assert [p.name for p in patches] == ["Good"]


def test_library_delete_patch(tmp_path):
    lib = Library(root=tmp_path)
    path = lib.save_patch(_patch("To Delete"))
    lib.delete_patch(path)
    assert lib.list_patches() == []
