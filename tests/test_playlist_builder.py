"""Test playlist creation from local tracks"""

import pytest
from unittest.mock import Mock, patch
from spotipy.exceptions import SpotifyException

from muzport.config.auth import AuthSession
from muzport.exceptions import AuthError, ConfigError, NotAuthorizedError, PlaylistCreationError
from muzport.spotify.playlist import PlaylistBuilder, build_playlist


def make_builder(mock_auth, settings, client):
    factory = Mock(return_value=client)
    return PlaylistBuilder(auth=mock_auth, settings=settings, client_factory=factory), factory


class TestPlaylistBuilder:
    """Test the build sequence"""

    def test_250_tracks_are_added_as_100_100_50(self, mock_auth, settings, fake_client, session, make_track):
        """Test batching of matched URIs"""
        tracks = [make_track(f"Song {i}", "Artist", path=f"/music/{i}.mp3") for i in range(250)]
        builder, _ = make_builder(mock_auth, settings, fake_client)

        result = builder.build(session, "Big list", tracks)

        batches = [call[0][1] for call in fake_client.add_tracks.call_args_list]
        assert [len(b) for b in batches] == [100, 100, 50]
        assert [uri for batch in batches for uri in batch] == result.added_uris
        assert result.added_uris == [f"spotify:track:track:Song {i} artist:Artist" for i in range(250)]
        assert all(call[0][0] == "playlist_123" for call in fake_client.add_tracks.call_args_list)

    def test_returns_playlist_url(self, mock_auth, settings, fake_client, session, sample_tracks):
        builder, _ = make_builder(mock_auth, settings, fake_client)

        result = builder.build(session, "Test Playlist", sample_tracks)

        assert result.url == "https://open.spotify.com/playlist/playlist_123"
        assert result.playlist_id == "playlist_123"
        assert result.requested == len(sample_tracks)
        assert result.not_found == []

    def test_unauthorized_session_makes_no_remote_calls(self, mock_auth, settings, fake_client, sample_tracks):
        """Test NotAuthorizedError before refresh, create, search or add"""
        builder, factory = make_builder(mock_auth, settings, fake_client)

        for session in (None, AuthSession(access_token='')):
            with pytest.raises(NotAuthorizedError):
                builder.build(session, "Nope", sample_tracks)

        mock_auth.refresh.assert_not_called()
        factory.assert_not_called()
        fake_client.create_playlist.assert_not_called()
        fake_client.search_first_uri.assert_not_called()
        fake_client.add_tracks.assert_not_called()

    def test_refresh_happens_before_create(self, mock_auth, settings, fake_client, session, sample_tracks):
        manager = Mock()
        manager.attach_mock(mock_auth.refresh, 'refresh')
        manager.attach_mock(fake_client.create_playlist, 'create_playlist')
        builder, _ = make_builder(mock_auth, settings, fake_client)

        builder.build(session, "Ordered", sample_tracks)

        call_names = [c[0] for c in manager.mock_calls]
        assert call_names.index('refresh') < call_names.index('create_playlist')
        mock_auth.refresh.assert_called_once_with(session)

    def test_refresh_failure_propagates(self, mock_auth, settings, fake_client, session, sample_tracks):
        mock_auth.refresh.side_effect = AuthError("refresh rejected")
        builder, _ = make_builder(mock_auth, settings, fake_client)

        with pytest.raises(AuthError):
            builder.build(session, "x", sample_tracks)
        fake_client.create_playlist.assert_not_called()

    def test_playlist_is_private_with_description(self, mock_auth, settings, fake_client, session, sample_tracks):
        builder, _ = make_builder(mock_auth, settings, fake_client)

        builder.build(session, "Private", sample_tracks)

        fake_client.create_playlist.assert_called_once_with(
            "Private", public=False, description="Playlist created with MUZPORT"
        )

    def test_search_queries(self, mock_auth, settings, fake_client, session, make_track):
        """Test title/artist query and the unknown-artist fallback"""
        tracks = [
            make_track("Creep", "Radiohead", path="/m/1.mp3"),
            make_track("Intro", "Unknown Artist", path="/m/2.mp3"),
        ]
        builder, _ = make_builder(mock_auth, settings, fake_client)

        builder.build(session, "Queries", tracks)

        queries = [c[0][0] for c in fake_client.search_first_uri.call_args_list]
        assert queries == ["track:Creep artist:Radiohead", "track:Intro"]

    def test_misses_and_search_errors_are_skipped(self, mock_auth, settings, fake_client, session, make_track):
        tracks = [make_track(f"Song {i}", "Artist", path=f"/m/{i}.mp3") for i in range(4)]
        fake_client.search_first_uri.side_effect = [
            "spotify:track:0",
            None,
            RuntimeError("connection reset"),
            "spotify:track:3",
        ]
        builder, _ = make_builder(mock_auth, settings, fake_client)

        result = builder.build(session, "Partial", tracks)

        assert result.added_uris == ["spotify:track:0", "spotify:track:3"]
        assert [t.title for t in result.not_found] == ["Song 1", "Song 2"]
        fake_client.add_tracks.assert_called_once_with("playlist_123", ["spotify:track:0", "spotify:track:3"])

    def test_nothing_found_adds_nothing(self, mock_auth, settings, fake_client, session, sample_tracks):
        fake_client.search_first_uri.side_effect = lambda query: None
        builder, _ = make_builder(mock_auth, settings, fake_client)

        result = builder.build(session, "Empty", sample_tracks)

        fake_client.add_tracks.assert_not_called()
        assert result.not_found_count == len(sample_tracks)
        assert result.url == "https://open.spotify.com/playlist/playlist_123"

    def test_create_rejected(self, mock_auth, settings, fake_client, session, sample_tracks):
        fake_client.create_playlist.side_effect = SpotifyException(403, -1, "forbidden")
        builder, _ = make_builder(mock_auth, settings, fake_client)

        with pytest.raises(PlaylistCreationError):
            builder.build(session, "Denied", sample_tracks)
        fake_client.search_first_uri.assert_not_called()

    def test_add_rejected(self, mock_auth, settings, fake_client, session, sample_tracks):
        fake_client.add_tracks.side_effect = SpotifyException(400, -1, "bad uri")
        builder, _ = make_builder(mock_auth, settings, fake_client)

        with pytest.raises(PlaylistCreationError) as exc_info:
            builder.build(session, "Bad add", sample_tracks)
        assert exc_info.value.details['playlist_id'] == "playlist_123"

    def test_batch_size_is_capped_at_100(self, mock_auth, settings, fake_client, session, make_track):
        settings.playlist.batch_size = 500
        tracks = [make_track(f"S{i}", "A", path=f"/m/{i}.mp3") for i in range(150)]
        builder, _ = make_builder(mock_auth, settings, fake_client)

        builder.build(session, "Capped", tracks)

        assert [len(c[0][1]) for c in fake_client.add_tracks.call_args_list] == [100, 50]

    def test_smaller_batch_size(self, mock_auth, settings, fake_client, session, make_track):
        settings.playlist.batch_size = 20
        tracks = [make_track(f"S{i}", "A", path=f"/m/{i}.mp3") for i in range(45)]
        builder, _ = make_builder(mock_auth, settings, fake_client)

        builder.build(session, "Small batches", tracks)

        assert [len(c[0][1]) for c in fake_client.add_tracks.call_args_list] == [20, 20, 5]

    def test_non_numeric_batch_size_fails_before_remote_calls(self, mock_auth, settings, fake_client, session, sample_tracks):
        settings.playlist.batch_size = "lots"
        builder, factory = make_builder(mock_auth, settings, fake_client)

        with pytest.raises(ConfigError):
            builder.build(session, "Misconfigured", sample_tracks)

        mock_auth.refresh.assert_not_called()
        factory.assert_not_called()

    def test_concurrent_search_keeps_order(self, mock_auth, settings, fake_client, session, make_track):
        settings.playlist.search_concurrency = 4
        tracks = [make_track(f"Song {i}", "Artist", path=f"/m/{i}.mp3") for i in range(30)]
        builder, _ = make_builder(mock_auth, settings, fake_client)

        result = builder.build(session, "Parallel", tracks)

        assert result.added_uris == [f"spotify:track:track:Song {i} artist:Artist" for i in range(30)]


class TestBuildPlaylistFunction:
    """Test the one-call helper"""

    def test_returns_url(self, mock_auth, settings, fake_client, session, sample_tracks):
        with patch('muzport.spotify.playlist.SpotifyClient', return_value=fake_client) as mock_client:
            url = build_playlist(session, "Helper", sample_tracks, auth=mock_auth, settings=settings)

        assert url == "https://open.spotify.com/playlist/playlist_123"
        mock_client.assert_called_once_with(session, settings)

    def test_unauthorized(self, mock_auth, settings, sample_tracks):
        with patch('muzport.spotify.playlist.SpotifyClient') as mock_client:
            with pytest.raises(NotAuthorizedError):
                build_playlist(None, "Helper", sample_tracks, auth=mock_auth, settings=settings)
        mock_client.assert_not_called()
