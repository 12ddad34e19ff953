from .real_debrid import RealDebridClient, parse_torrent_info

__all__ = ["RealDebridClient", "parse_torrent_info"]
