"""Sample module manifests used across tests."""
from __future__ import annotations

from pathlib import Path

SAMPLE_MANIFEST = """\
# Module manifest for module 'Sample'
@{
    RootModule        = 'Sample.psm1'
    ModuleVersion     = '1.0.0'   # bumped by the build
    GUID              = 'b1a2c3d4-0000-4000-8000-000000000001'
    Author            = "Jane O'Neil"
    Description       = @'
Line one
Line two
'@
    FunctionsToExport = @()
    CmdletsToExport   = 'Get-Old', 'Set-Old'
    AliasesToExport   = '*'
    RequiredModules   = @('PSSharedGoods', @{ ModuleName = 'PSWriteColor'; ModuleVersion = '1.0.1' })
    <# block
       comment #>
    PrivateData       = @{
        PSData = @{
            Tags                     = @('Windows', 'Linux')
            ProjectUri               = 'https://example.invalid/sample'
            RequireLicenseAcceptance = $false
            Delivery                 = @{
                Enable         = $false
                Branch         = 'main'
                Paths          = @('Docs')
                ImportantLinks = @(@{ Name = 'Home'; Link = 'https://example.invalid' })
            }
        }
    }
}
"""


def write_manifest(directory: Path, name: str = "Sample", text: str = SAMPLE_MANIFEST, *, bom: bool = True, crlf: bool = True) -> Path:
    """Write ``text`` as ``<directory>/<name>.psd1`` and return its path."""
    if crlf:
        text = text.replace("\n", "\r\n")
    data = text.encode("utf-8")
    if bom:
        data = b"\xef\xbb\xbf" + data
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.psd1"
    path.write_bytes(data)
    return path
