from macrodef.models.artifact import HandlerArtifact

__all__ = ["HandlerArtifact"]
