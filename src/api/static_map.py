"""Placeholder map image rendered as inline SVG (no real tiles are fetched)."""

WIDTH = 800
HEIGHT = 600


def render_static_map(lat, lng, width=WIDTH, height=HEIGHT):
    inner_w = width - 40
    inner_h = height - 80
    cx = width / 2
    cy = height / 2
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">
  <rect width="100%" height="100%" fill="#1F2937"/>
  <rect x="20" y="20" width="{inner_w}" height="{inner_h}" fill="#374151" stroke="#4B5563" stroke-width="2"/>
  <defs>
    <pattern id="grid" width="50" height="50" patternUnits="userSpaceOnUse">
      <path d="M 50 0 L 0 0 0 50" fill="none" stroke="#4B5563" stroke-width="1" opacity="0.3"/>
    </pattern>
  </defs>
  <rect x="20" y="20" width="{inner_w}" height="{inner_h}" fill="url(#grid)"/>
  <circle cx="{cx:g}" cy="{cy:g}" r="8" fill="#10B981"/>
  <circle cx="{cx:g}" cy="{cy:g}" r="4" fill="#065F46"/>
  <text x="{cx:g}" y="{cy + 40:g}" text-anchor="middle" font-family="Arial, sans-serif" font-size="16" fill="#F9FAFB">
    위도: {lat:.6f}
  </text>
  <text x="{cx:g}" y="{cy + 65:g}" text-anchor="middle" font-family="Arial, sans-serif" font-size="16" fill="#F9FAFB">
    경도: {lng:.6f}
  </text>
  <rect x="10" y="{height - 80}" width="{width - 20}" height="70" fill="rgba(0,0,0,0.7)" rx="8"/>
  <text x="20" y="{height - 50}" font-family="Arial, sans-serif" font-size="16" font-weight="bold" fill="#10B981">
    지도 위치: {lat:.4f}, {lng:.4f}
  </text>
  <text x="20" y="{height - 25}" font-family="Arial, sans-serif" font-size="14" fill="#F9FAFB">
    좌표 기반 지도 이미지
  </text>
</svg>"""
