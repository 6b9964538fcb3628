from directory import Member, Room, RoomDirectory


def test_get_or_create_returns_same_room():
    directory = RoomDirectory()
    room = directory.get_or_create("r1")
    assert directory.get_or_create("r1") is room
    assert "r1" in directory
    assert len(directory) == 1


def test_room_ids_are_case_sensitive():
    directory = RoomDirectory()
    directory.get_or_create("Lobby")
    directory.get_or_create("lobby")
    assert len(directory) == 2


def test_remove_is_idempotent():
    directory = RoomDirectory()
    directory.get_or_create("r1")
    directory.remove("r1")
    directory.remove("r1")
    assert "r1" not in directory
    assert directory.get("r1") is None


def test_for_each_room_tolerates_removal_during_iteration():
    directory = RoomDirectory()
    for room_id in ("a", "b", "c"):
        directory.get_or_create(room_id)

    visited = []

    def visit(room):
        visited.append(room.room_id)
        directory.remove(room.room_id)

    directory.for_each_room(visit)
    assert visited == ["a", "b", "c"]
    assert len(directory) == 0


def test_snapshot_excludes_given_connection_and_keeps_join_order():
    room = Room(room_id="r1")
    room.add(Member("c1", "u1", "Alice"))
    room.add(Member("c2", "u2", "Bob"))
    room.add(Member("c3", "u3", "Carol"))

    assert [m.connection_id for m in room.snapshot()] == ["c1", "c2", "c3"]
    assert [m.connection_id for m in room.snapshot(exclude="c2")] == ["c1", "c3"]


def test_add_same_connection_overwrites_record():
    room = Room(room_id="r1")
    room.add(Member("c1", "u1", "Alice"))
    room.add(Member("c1", "u1", "Alice Again"))
    assert len(room) == 1
    assert room.members["c1"].display_name == "Alice Again"


def test_discard_returns_removed_member_once():
    room = Room(room_id="r1")
    room.add(Member("c1", "u1", "Alice"))
    assert room.discard("c1").display_name == "Alice"
    assert room.discard("c1") is None
