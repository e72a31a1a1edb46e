"""
Billboard Studio — turns a live camera photo into a face-swapped billboard and
a short generated video.

Providers:
  - Gemini 2.0 Flash        — photo analysis, billboard caption
  - Nano Banana Pro         — face swap onto a stock template
  - RunwayML Gen-3 Turbo    — image-to-video
"""
