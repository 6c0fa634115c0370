"""Model upload module.

This module handles uploading, listing, deleting and signing access to
3D model files stored in the configured bucket.

Supported file types (by declared MIME type):
- glTF: model/gltf-binary, model/gltf+json
- STL: model/stl
- Wavefront: model/obj, model/mtl
- COLLADA: model/vnd.collada+xml
- Generic binary: application/octet-stream

Files above the configured size limit (200 MiB by default) are rejected.
"""
