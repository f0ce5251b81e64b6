"""Built-in ascii images for `MatrixMonitor.draw`.

Sources: https://ascii.co.uk/art and http://www.ascii-art.de/ascii/
"""

from __future__ import annotations

from pathlib import Path

# artist: unknown
ALIEN = r"""
.     .       .  .   . .   .   . .    +  .
    .     .  :     .    .. :. .___---------___.
         .  .   .    .  :.:. _".^ .^ ^.  '.. :"-_. .
      .  :       .  .  .:../:            . .^  :.:\.
          .   . :: +. :.:/: .   .    .        . . .:\
   .  :    .     . _ :::/:               .  ^ .  . .:\
    .. . .   . - : :.:./.                        .  .:\
    .      .     . :..|:                    .  .  ^. .:|
      .       . : : ..||        .                . . !:|
    .     . . . ::. ::\(                           . :)/
   .   .     : . : .:.|. ######              .#######::|
    :.. .  :-  : .:  ::|.#######           ..########:|
   .  .  .  ..  .  .. :\ ########          :######## :/
    .        .+ :: : -.:\ ########       . ########.:/
      .  .+   . . . . :.:\. #######       #######..:/
        :: . . . . ::.:..:.\           .   .   ..:/
     .   .   .  .. :  -::::.\.       | |     . .:/
        .  :  .  .  .-:.":.::.\             ..:/
   .      -.   . . . .: .:::.:.\.           .:/
  .   .   .  :      : ....::_:..:\   ___.  :/
     .   .  .   .:. .. .  .: :.:.:\       :/
       +   .   .   : . ::. :.:. .:.|\  .:/|
       .         +   .  .  ...:: ..|  --.:|
  .      . . .   .  .  . ... :..:.."(  ..)"
   .   .       .      :  .   .: ::/  .  .::\
""".strip("\n")

SKULL = r"""
         _,.-------.,_
    ,;~'             '~;,
  ,;                     ;,
 ;                         ;
,'                         ',
,;                           ;,
; ;      .           .      ; ;
| ;   ______       ______   ; |
|  `/~"     ~" . "~     "~\'  |
|  ~  ,-~~~^~, | ,~^~~~-,  ~  |
|   |        }:{        |   |
|   l       / | \       !   |
.~  (__,.--" .^. "--.,__)  ~.
|     ---;' / | \ `;---     |
 \__.       \/^\/       .__/
  V| \                 / |V
   | |T~\___!___!___/~T| |
   | |`IIII_I_I_I_IIII'| |
   |  \,III I I I III,/  |
    \   `~~~~~~~~~~'    /
      \   .       .   /
        \.    ^    ./
          ^~~~^~~~^
                dcau (4/15/95)
""".strip("\n")

BUILT_IN_IMAGES = {
    "alien": ALIEN,
    "skull": SKULL,
}


def load_image(name_or_path: str) -> str:
    """Return a built-in image by name, or the text of an image file."""
    built_in = BUILT_IN_IMAGES.get(name_or_path.strip().lower())
    if built_in is not None:
        return built_in
    return Path(name_or_path).read_text(encoding="utf-8").rstrip("\n")
