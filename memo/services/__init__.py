from memo.services.relay_service import RelayService

__all__ = ["RelayService"]
