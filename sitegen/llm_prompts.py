from __future__ import annotations

import json
from typing import Any, Dict, Optional

PROJECT_IMAGE = "https://images.unsplash.com/photo-1589829545856-d10d557cf95f"
RESTAURANT_IMAGE = "https://images.unsplash.com/photo-1504674900247-0877df9cc836"

COMMAND_SYSTEM = (
    "You are an intelligent web design AI assistant. You understand natural language commands "
    "and make precise, targeted changes to websites."
)
SUGGESTIONS_SYSTEM = (
    "You are an expert UX/UI designer and web design consultant with deep knowledge of WCAG "
    "standards, conversion optimization, and design psychology."
)


def _dump(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


def build_analysis_prompt() -> str:
    return (
        "You are an expert website consultant. Analyze the user's website request and extract key information.\n\n"
        "Extract the following from the user's description:\n"
        '1. industry: the business industry (e.g. "Restaurant", "Technology", "Photography")\n'
        "2. siteType: one of portfolio, business, resume, landing, restaurant, ecommerce, saas\n"
        "3. tone: the desired style (professional, casual, creative, modern)\n"
        '4. features: array of key features mentioned (e.g. ["menu", "reservations", "gallery"])\n'
        "5. siteName: generate a professional business name if none is given\n"
        "6. description: a brief 1-2 sentence summary\n\n"
        "Rules:\n"
        "- Always provide a siteName, relevant to the industry.\n"
        '- Good siteNames: "law firm" -> "Premier Legal Associates", "restaurant" -> "Bella Italia Restaurant".\n'
        '- If no siteName can be inferred, use "My <Industry> Website".\n'
        "- Return ONLY valid JSON, no markdown and no explanations.\n\n"
        "Return JSON in this exact format:\n"
        '{"industry":"string","siteType":"portfolio|business|resume|landing|restaurant|ecommerce|saas",'
        '"tone":"professional|casual|creative|modern","features":["feature1","feature2"],'
        '"siteName":"Professional Business Name","description":"Brief 1-2 sentence summary",'
        '"primaryColor":"#hexcode or null"}'
    )


def build_analysis_user_message(prompt: str, options: Dict[str, Any]) -> str:
    return f"Analyze this website request:\n\nPrompt: {prompt}\n\nOptions: {_dump(options)}"


def build_content_prompt(industry: str, tone: str, include_projects: bool) -> str:
    """System prompt for the general templates.

    When ``include_projects`` is false the projects schema is left out
    entirely and an explicit note tells the model not to produce one.
    """
    projects_section = ""
    projects_example = ""
    note = ""
    if include_projects:
        projects_section = (
            "5. projects - array of objects with id (\"project-1\", ...), title, description "
            f"(2-3 sentences), image (placeholder URL such as \"{PROJECT_IMAGE}\"), "
            "tags (3-5 skill tags), link (optional)\n"
        )
        projects_example = (
            ',"projects":[{"id":"project-1","title":"Example Project",'
            '"description":"Brief description of the project and its impact.",'
            f'"image":"{PROJECT_IMAGE}","tags":["tag1","tag2","tag3"],"link":"#"}}]'
        )
    else:
        note = "\nNOTE: Do NOT generate a projects section for this business-focused website."
    n = 6 if include_projects else 5
    return (
        "You are a professional copywriter. Generate compelling website content based on the site analysis.\n\n"
        "Generate content for these sections (all keys lowercase):\n"
        "1. hero - title (catchy heading), subtitle (tagline), description (1-2 sentences), "
        'cta {"primary": {"text": "Get Started", "link": "#contact"}}\n'
        "2. about - title, description (2-3 paragraphs)\n"
        "3. services - title, subtitle (optional), items: 3-6 of {id, title, description, icon (emoji)}\n"
        "4. testimonials - title, subtitle (optional), items: 3-5 of "
        "{id, content, author, role, company, avatar (emoji), rating}\n"
        f"{projects_section}"
        f"{n}. contact - email, phone, location (City, State), description (optional)\n"
        f"{n + 1}. social - optional github, linkedin, twitter, instagram, website URLs\n\n"
        "Rules:\n"
        "- Use lowercase keys only (hero, not Hero) and match this exact structure.\n"
        f"- Make content relevant to: {industry}\n"
        f"- Use tone: {tone}\n"
        "- Generate realistic content, never lorem ipsum.\n"
        f"- Use emojis for icons.{note}\n\n"
        "Example structure:\n"
        '{"hero":{"title":"Professional Headline","subtitle":"Tagline goes here",'
        '"description":"Brief description of what you offer.",'
        '"cta":{"primary":{"text":"Get Started","link":"#contact"}}},'
        '"about":{"title":"About Us","description":"Your story goes here..."},'
        '"services":{"title":"Our Services","subtitle":"What we offer","items":[{"id":"service-1",'
        '"title":"Service Name","description":"Service description here.","icon":"💼"}]},'
        '"testimonials":{"title":"Client Testimonials","items":[{"id":"testimonial-1",'
        '"content":"Great experience working with them!","author":"John Doe","role":"CEO",'
        '"company":"Tech Corp","avatar":"👨‍💼","rating":5}]}'
        f"{projects_example},"
        '"contact":{"email":"contact@example.com","phone":"+1 (555) 123-4567",'
        '"location":"San Francisco, CA","description":"Get in touch with us today."},'
        '"social":{"linkedin":"https://linkedin.com/company/example","website":"https://example.com"}}\n\n'
        "Return ONLY valid JSON matching this structure. No markdown, no explanations."
    )


def build_content_user_message(record: Any) -> str:
    features = ", ".join(record.features) or "standard website features"
    return (
        "Generate website content for:\n"
        f"Industry: {record.industry}\n"
        f"Type: {record.site_type}\n"
        f"Name: {record.site_name}\n"
        f"Description: {record.description}\n"
        f"Tone: {record.tone}\n"
        f"Features: {features}"
    )


def build_restaurant_prompt(industry: str, tone: str) -> str:
    return (
        "You are a professional restaurant marketing copywriter. "
        f"Generate compelling website content for a {tone} {industry} restaurant.\n\n"
        "Generate content for these sections (all keys lowercase):\n"
        "1. hero - slides: 3 of {id, badge, title, subtitle, description, image, "
        f"ctaprimary {{text, link}}, ctasecondary {{text, link}}}}; use Unsplash food images such as \"{RESTAURANT_IMAGE}\"\n"
        "2. about - title, subtitle, description (2-3 paragraphs), story (optional), "
        'features: 3-4 of {icon, title, description} with icons "award", "heart", "users", "clock", '
        "images: 3 URLs, stats (optional): 3 of {number, label}\n"
        "3. menu - title, subtitle, items: 8-12 of {id, name, description, price, category, image, "
        'isspecial, rating, tags}; categories "appetizers", "main course", "desserts", "beverages"; '
        'prices like "$24"; dietary tags like ["Vegetarian", "Gluten-Free"]\n'
        '4. gallery - title, subtitle (optional), images: 8-10 of {id, src, alt, category} '
        'with categories "Interior", "Food", "Events"\n'
        "5. testimonials - title, subtitle (optional), items: 4-6 of "
        "{id, content, author, role, company, rating (4-5), image, date}\n"
        "6. reservations - title, subtitle (optional), description\n"
        "7. contact - phone, email, address, hours (multi-line)\n"
        "8. footer - about {title, description}, services: 4-5 of {title, link}, "
        "blog: 2-3 of {title, date, author, comments, link}\n"
        "9. social - facebook, instagram, twitter, youtube URLs\n\n"
        "Rules:\n"
        "- Use lowercase keys only.\n"
        f"- Generate authentic {industry} menu items, never generic ones.\n"
        f"- Use realistic prices for {tone} dining.\n"
        "- Make descriptions appetizing and elegant; no emojis.\n\n"
        "Return ONLY valid JSON matching this structure."
    )


def build_restaurant_user_message(record: Any) -> str:
    features = ", ".join(record.features) or "fine dining, reservations"
    return (
        "Generate website content for this restaurant:\n"
        f"Name: {record.site_name}\n"
        f"Description: {record.description}\n"
        f"Cuisine Type: {record.industry}\n"
        f"Tone: {record.tone}\n"
        f"Features: {features}"
    )


def build_command_prompt(command: str, snapshot: Dict[str, Any]) -> str:
    return (
        "Process this natural language command and make ONLY the changes the user wants.\n\n"
        f'USER COMMAND: "{command}"\n\n'
        "CURRENT STATE:\n"
        f"Colors: {_dump(snapshot.get('colors') or {})}\n"
        f"Fonts: {_dump(snapshot.get('fonts') or {})}\n"
        f"Template: {snapshot.get('template')}\n"
        f"Sections: {_dump(snapshot.get('sectionOrder') or [])}\n"
        f"Available: {_dump(snapshot.get('hasSections') or {})}\n"
        f"Hero title: {_dump(snapshot.get('heroTitle') or '')}\n"
        f"About title: {_dump(snapshot.get('aboutTitle') or '')}\n\n"
        "RULES:\n"
        '1. Be specific: "change color to blue" changes ONLY the primary color.\n'
        '2. Preserve content: never delete content unless the user explicitly says "delete content".\n'
        '3. "Remove section" means hide it (components.remove), NOT delete its data.\n'
        '4. Smart inference: "make it professional" = colors + fonts; "warmer" = warm colors only.\n'
        "5. Do not add things the user did not ask for.\n"
        '6. "remove", "hide", "get rid of" and "take out" all mean the same.\n\n'
        "EXAMPLES:\n"
        '- "Remove About Me Section" -> components.remove: ["about"]\n'
        '- "Change color to blue" -> colors.primary: "#3B82F6"\n'
        '- "Make text darker" -> colors.text: "#111111"\n'
        '- "Use modern fonts" -> fonts.heading + fonts.body\n'
        '- "Add testimonials" -> components.add: ["testimonials"]\n'
        '- "Change hero title to Welcome" -> content.hero.title: "Welcome"\n\n'
        "OUTPUT FORMAT (valid JSON only):\n"
        '{"changes":{"colors":{"primary":"#hex"},"fonts":{"heading":"font","body":"font"},'
        '"content":{"hero":{"title":"text"}},'
        '"layout":{"spacing":"compact|normal|spacious","sectionOrder":["hero","about"]},'
        '"components":{"add":["testimonials"],"remove":["about"]},'
        '"animations":{"entranceEffect":"fade-in"}},'
        '"explanation":"Brief explanation of what you changed",'
        '"additionalSuggestions":["Related suggestion"]}\n\n'
        "Only include properties that are actually changing. If the command is unclear, make minimal safe changes. "
        "components.remove never deletes data, it only hides the section."
    )


def build_suggestions_prompt(
    snapshot: Dict[str, Any],
    analytics: Optional[Dict[str, Any]],
    low_contrast: bool,
    readability_issue: bool,
    order_issue: bool,
) -> str:
    if analytics and analytics.get("bounceRate") is not None:
        analytics_line = f"Bounce rate: {analytics.get('bounceRate')}%"
    else:
        analytics_line = "No analytics data available"
    contrast = "ISSUE: low contrast detected (accessibility concern)" if low_contrast else "OK: good contrast"
    fonts = "ISSUE: font pairing could be improved" if readability_issue else "OK: good font pairing"
    order = "ISSUE: unconventional section order" if order_issue else "OK: logical section flow"
    return (
        "Analyze this website and provide 3-5 HIGH-IMPACT, ACTIONABLE improvement suggestions.\n\n"
        "CURRENT DESIGN STATE:\n"
        f"Template: {snapshot.get('template')}\n"
        f"Colors: {_dump(snapshot.get('colors') or {})}\n"
        f"Fonts: {_dump(snapshot.get('fonts') or {})}\n"
        f"Section Order: {_dump(snapshot.get('sections') or [])}\n"
        f"Hero Title: {_dump(snapshot.get('heroTitle') or '')}\n"
        f"About Title: {_dump(snapshot.get('aboutTitle') or '')}\n\n"
        f"ANALYTICS: {analytics_line}\n\n"
        "DESIGN AUDIT FINDINGS:\n"
        f"- Color Contrast: {contrast}\n"
        f"- Typography: {fonts}\n"
        f"- Section Flow: {order}\n\n"
        "Prioritize accessibility, conversion and user experience. Every suggestion MUST carry an action that "
        "can be applied immediately, with exact values (hex codes, font names, section ids).\n\n"
        "ACTION TYPES:\n"
        '- "apply-color": {"primary": "#hex", "text": "#hex", ...}\n'
        '- "apply-font": {"heading": "Font Name", "body": "Font Name"}\n'
        '- "reorder-sections": {"order": ["hero", "about", ...]}\n'
        '- "add-section": {"section": "testimonials|services|contact"}\n'
        '- "update-spacing": {"spacing": "compact|normal|spacious"}\n'
        '- "update-content": {"section": "hero", "fields": {"title": "..."}}\n\n'
        "REQUIRED JSON OUTPUT:\n"
        '{"suggestions":[{"id":"improve-contrast","type":"color","priority":"high|medium|low",'
        '"title":"Improve Color Contrast","description":"Why this matters",'
        '"action":{"type":"apply-color","params":{"text":"#1F2937","background":"#FFFFFF"}},'
        '"expectedImpact":"Expected effect"}],'
        '"overallScore":75,"strengths":["Clear hierarchy"],"areasToImprove":["Color accessibility"]}\n\n'
        "Respond with ONLY valid JSON."
    )


SECTION_SYSTEM = (
    "You are a professional copywriter and web content strategist. Create compelling, "
    "conversion-focused content that engages visitors. Return only valid JSON."
)
SEO_SYSTEM = (
    "You are an expert SEO specialist. You only respond with valid JSON objects, no markdown formatting. "
    "You understand search intent, keyword research, and how to write compelling meta descriptions that drive clicks."
)
PALETTE_SYSTEM = (
    "You are a professional color theory expert and brand designer. "
    "You only respond with valid JSON objects, no markdown formatting."
)
FONTS_SYSTEM = "You are a professional typography expert specializing in web design. Return only valid JSON."

FONT_LIBRARY = {
    "headings": (
        "Playfair Display", "Montserrat", "Raleway", "Poppins", "Bebas Neue",
        "Oswald", "Merriweather", "Lora", "Roboto Slab", "Space Grotesk",
        "Inter", "DM Serif Display", "Crimson Text", "Bitter", "Abril Fatface",
    ),
    "body": (
        "Open Sans", "Lato", "Roboto", "Source Sans Pro", "Nunito",
        "Work Sans", "Karla", "Mulish", "Inter", "PT Sans",
        "Noto Sans", "Rubik", "Hind", "Libre Franklin", "Manrope",
    ),
}

_SECTION_SHAPES = {
    "hero": (
        '{"type":"hero","title":"Main headline (compelling, benefit-focused, max 60 chars)",'
        '"subtitle":"Supporting text (clear value proposition, 100-150 chars)",'
        '"content":"Brief description (2-3 sentences about what makes them unique)",'
        '"cta":{"text":"Primary action button text","action":"get-started"}}',
        "",
    ),
    "about": (
        '{"type":"about","title":"Section heading",'
        '"content":"Compelling story (3-4 paragraphs about mission, values, and what drives the business)",'
        '"items":[{"title":"Value 1 (e.g. Our Mission)","description":"Brief description","icon":"🎯"}]}',
        "",
    ),
    "services": (
        '{"type":"services","title":"Services section heading","subtitle":"Brief description of services offered",'
        '"items":[{"title":"Service name","description":"Service description (2-3 sentences, benefit-focused)",'
        '"icon":"relevant emoji"}]}',
        "Include 3-4 services.",
    ),
    "features": (
        '{"type":"features","title":"Features section heading","subtitle":"Brief description of key benefits",'
        '"items":[{"title":"Feature name","description":"Feature benefit (focus on customer value, not just '
        'functionality)","icon":"relevant emoji"}]}',
        "Include 4-6 features.",
    ),
    "testimonials": (
        '{"type":"testimonials","title":"Testimonials section heading",'
        '"subtitle":"Brief introduction to customer success",'
        '"items":[{"title":"Customer name and role/company",'
        '"description":"Realistic testimonial quote (specific results, emotional benefit)","icon":"⭐"}]}',
        "Include 3 testimonials.",
    ),
    "cta": (
        '{"type":"cta","title":"Compelling CTA headline","subtitle":"Urgency or benefit statement",'
        '"content":"Brief explanation of next steps or what they will get",'
        '"cta":{"text":"Action button text (action-oriented)","action":"contact"}}',
        "",
    ),
    "contact": (
        '{"type":"contact","title":"Contact section heading",'
        '"content":"Friendly invitation to get in touch (2-3 sentences)",'
        '"items":[{"title":"Contact method (e.g. Email)","description":"Placeholder contact info or instruction",'
        '"icon":"relevant emoji"}]}',
        "",
    ),
}

_SECTION_LABELS = {
    "hero": "Hero",
    "about": "About",
    "services": "Services",
    "features": "Features",
    "testimonials": "Testimonials",
    "cta": "Call-to-Action",
    "contact": "Contact",
}


def build_section_prompt(
    section_type: str,
    industry: Optional[str] = None,
    business_name: Optional[str] = None,
    tone: Optional[str] = None,
    context: Optional[str] = None,
) -> str:
    """Unknown section types are asked for as an about section."""
    kind = section_type if section_type in _SECTION_SHAPES else "about"
    shape, count = _SECTION_SHAPES[kind]
    tone_info = tone or "professional and engaging"
    prompt = (
        f"Create a {_SECTION_LABELS[kind]} section for {business_name or 'the business'} "
        f"in {industry or 'this industry'}.\n\nReturn JSON:\n{shape}"
    )
    if count:
        prompt += f"\n{count}"
    if context:
        prompt += f"\n\nAdditional context: {context}"
    return prompt + f"\n\nTone: {tone_info}. Make it sound natural and {tone_info}."


def build_seo_prompt(content: str, brand_name: Optional[str] = None, industry: Optional[str] = None) -> str:
    lines = ["Based on this content, generate SEO-optimized meta tags:", "", f"Content: {content}"]
    if brand_name:
        lines.append(f"Brand: {brand_name}")
    if industry:
        lines.append(f"Industry: {industry}")
    return "\n".join(lines) + (
        "\n\nReturn ONLY a JSON object with this exact structure (no markdown, no explanation):\n"
        '{"title":"SEO title (50-60 characters, includes main keyword)",'
        '"description":"Meta description (150-160 characters, compelling and keyword-rich)",'
        '"keywords":["keyword1","keyword2","keyword3","keyword4","keyword5"],'
        '"ogTitle":"Open Graph title (social media preview)",'
        '"ogDescription":"Open Graph description (social media preview)"}\n\n'
        "Requirements:\n"
        "- Title should be catchy and include the primary keyword\n"
        "- Description should be action-oriented and include a call-to-action\n"
        "- Keywords should be relevant and varied (3-7 keywords)\n"
        "- OG title and description optimized for social sharing\n"
        "- All text should be natural, not keyword-stuffed"
    )


def build_palette_prompt(industry: Optional[str] = None, mood: Optional[str] = None, brand_name: Optional[str] = None) -> str:
    brand = f'"{brand_name}", ' if brand_name else ""
    return (
        f"Generate a professional color palette for {brand}a {industry or 'business'} "
        f"that should feel {mood or 'professional'}.\n\n"
        "Return ONLY a JSON object with this exact structure (no markdown, no explanation):\n"
        '{"primary":"#hexcolor","secondary":"#hexcolor","accent":"#hexcolor","background":"#hexcolor",'
        '"text":"#hexcolor","name":"Palette Name",'
        '"description":"One sentence describing the palette\'s mood and purpose"}\n\n'
        "Requirements:\n"
        "- Use hex colors only\n"
        "- Ensure high contrast between text and background (WCAG AA compliant)\n"
        "- Primary should be the main brand color\n"
        "- Secondary complements primary\n"
        "- Accent for CTAs and highlights\n"
        "- Background should be subtle (light or dark based on mood)\n"
        "- Text should have good readability on background"
    )


def build_fonts_prompt(
    industry: Optional[str] = None,
    mood: Optional[str] = None,
    current_fonts: Optional[Dict[str, Any]] = None,
) -> str:
    current = current_fonts or {}
    return (
        f"As a typography expert, suggest 3 professional font pairings for a {industry or 'business'} "
        f"website with a {mood or 'professional'} mood.\n\n"
        f"Current fonts: {current.get('heading') or 'none'} (heading), {current.get('body') or 'none'} (body)\n\n"
        "Choose from these Google Fonts:\n"
        f"Headings: {', '.join(FONT_LIBRARY['headings'])}\n"
        f"Body: {', '.join(FONT_LIBRARY['body'])}\n\n"
        "For each pairing provide a unique id (e.g. \"modern-minimal\"), a descriptive name, the heading font, "
        "the body font, a brief description of the pairing's personality, the vibe it creates "
        '(e.g. "Professional & Trustworthy") and what it is best for (array of use cases).\n\n'
        "Return JSON in this structure:\n"
        '{"pairings":[{"id":"modern-minimal","name":"Modern Minimal","heading":"Montserrat","body":"Open Sans",'
        '"description":"Clean, contemporary typography that projects sophistication and clarity",'
        '"vibe":"Professional & Trustworthy","bestFor":["Corporate sites","SaaS products"]}]}'
    )
