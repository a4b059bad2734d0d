profiles_sql = """
CREATE TABLE profiles (
    id UUID PRIMARY KEY REFERENCES auth.users(id) ON DELETE CASCADE,

    username TEXT NOT NULL,
    -- lower-cased, badges and emoji stripped; written at registration
    username_normalized TEXT NOT NULL,
    email TEXT NOT NULL,
    image_url TEXT,

    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),

    CONSTRAINT unique_username_normalized UNIQUE (username_normalized),
    CONSTRAINT unique_email UNIQUE (email)
);
"""
